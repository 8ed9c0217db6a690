"""
News service: reads plus the aggregate synchronizer for the News aggregate.

Design notes
------------
- A news aggregate is the News row together with its blocks, images, tag
  links and related-news links. ``AggregateSynchronizer`` writes all of
  them as one unit: every create/update/delete either lands completely or
  is rolled back before the error reaches the caller.
- Child collections are replaced wholesale (delete-then-reinsert), never
  diffed. On update, a collection that is ``None`` is left alone and an
  empty list clears it.
- References (author, category, tags, related news) are checked before
  the first write so missing ids surface as NotFoundError with nothing to
  undo.
- Reads eager-load with ``joinedload``/``selectinload`` and
  ``populate_existing`` so a session that just rewrote a collection
  through bulk statements never serves the stale identity-map copy.
- Like the other services, successful writes flush but leave the commit to
  the ``get_db`` dependency.
"""
import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import asc, delete, desc, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from newsroom.exceptions import (
    ConflictError,
    NewsroomError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from newsroom.models import (
    Author,
    Category,
    News,
    NewsBlock,
    NewsImage,
    NewsRelated,
    NewsStatus,
    Tag,
    news_tags,
)
from newsroom.schemas import (
    BlockIn,
    ImageIn,
    NewsCreate,
    NewsUpdate,
    PaginatedResponse,
    RelatedRef,
)
from newsroom.services.slug_service import SlugResolver, fallback_slug

logger = logging.getLogger(__name__)

_SORTABLE_COLUMNS: frozenset[str] = frozenset({"published_at", "created_at", "title"})

_CHILD_FIELDS = ("blocks", "images", "tags", "related_ids")
_NOT_NULL_FIELDS = ("title", "status", "is_featured")


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _cover_url(news: News) -> str | None:
    if not news.images:
        return None
    return min(news.images, key=lambda img: img.position).url


def _news_to_dict(news: News) -> dict:
    """Serialise a News ORM instance to a plain dict (list view)."""
    return {
        "id": news.id,
        "title": news.title,
        "subtitle": news.subtitle,
        "summary": news.summary,
        "status": news.status,
        "published_at": _iso(news.published_at),
        "canonical_slug": news.canonical_slug,
        "is_featured": news.is_featured,
        "created_at": _iso(news.created_at),
        "author_id": news.author_id,
        "main_category_id": news.main_category_id,
        "author_name": news.author.name if news.author else None,
        "category_name": news.category.name if news.category else None,
        "category_slug": news.category.slug if news.category else None,
        "image_url": _cover_url(news),
    }


def _news_detail_to_dict(news: News) -> dict:
    """Serialise a fully loaded News aggregate (detail view)."""
    data = _news_to_dict(news)
    data["updated_at"] = _iso(news.updated_at)
    data["author_email"] = news.author.email if news.author else None
    data["blocks"] = [
        {
            "id": b.id,
            "type": b.type,
            "content": b.content,
            "media_url": b.media_url,
            "alt_text": b.alt_text,
            "position": b.position,
        }
        for b in sorted(news.blocks, key=lambda b: (b.position, b.id))
    ]
    data["images"] = [
        {
            "id": img.id,
            "news_id": img.news_id,
            "url": img.url,
            "caption": img.caption,
            "alt_text": img.alt_text,
            "position": img.position,
        }
        for img in sorted(news.images, key=lambda img: (img.position, img.id))
    ]
    data["tags"] = [{"id": t.id, "name": t.name, "slug": t.slug} for t in news.tags]
    data["related"] = [
        {
            "id": link.related.id,
            "title": link.related.title,
            "summary": link.related.summary,
            "canonical_slug": link.related.canonical_slug,
            "relation_type": link.relation_type,
        }
        for link in news.related_links
        if link.related is not None
    ]
    return data


def _detail_query():
    return (
        select(News)
        .options(
            joinedload(News.author),
            joinedload(News.category),
            selectinload(News.blocks),
            selectinload(News.images),
            selectinload(News.tags),
            selectinload(News.related_links).joinedload(NewsRelated.related),
        )
        .execution_options(populate_existing=True)
    )


def _is_unique_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig).lower()
    return "unique" in text or "duplicate" in text


# ---------------------------------------------------------------------------
# Aggregate synchronizer
# ---------------------------------------------------------------------------

class AggregateSynchronizer:
    """
    Persists a news aggregate so the stored child collections equal exactly
    what the caller supplied.

    The session's transaction is the atomicity boundary: on any failure
    the whole session is rolled back before the error is re-raised, so no
    partially written aggregate is ever visible. The caller (``get_db``)
    commits on success.
    """

    def __init__(self, db: AsyncSession, slugs: SlugResolver) -> None:
        self.db = db
        self.slugs = slugs

    # ------------------------------------------------------------------
    # Transaction wiring
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _atomic(self, operation: str, news_id: int | None = None):
        try:
            yield
            await self.db.flush()
        except NewsroomError:
            await self.db.rollback()
            raise
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning("%s news id=%s rolled back: %s", operation, news_id, exc.orig)
            if _is_unique_violation(exc):
                raise ConflictError(
                    "A news item with this slug already exists",
                    context={"operation": operation, "news_id": news_id},
                ) from exc
            raise TransientError(context={"operation": operation, "news_id": news_id}) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("%s news id=%s rolled back: %s", operation, news_id, exc)
            raise TransientError(context={"operation": operation, "news_id": news_id}) from exc

    # ------------------------------------------------------------------
    # Pre-write checks
    # ------------------------------------------------------------------

    async def _require_ids(self, model, ids: Iterable[int], resource: str) -> None:
        wanted = set(ids)
        if not wanted:
            return
        result = await self.db.execute(select(model.id).where(model.id.in_(wanted)))
        missing = sorted(wanted - set(result.scalars().all()))
        if missing:
            raise NotFoundError(resource, missing[0], context={"missing_ids": missing})

    async def _check_references(
        self,
        author_id: int | None = None,
        category_id: int | None = None,
        tag_ids: list[int] | None = None,
        related: list[RelatedRef] | None = None,
    ) -> None:
        if author_id is not None:
            await self._require_ids(Author, [author_id], "author")
        if category_id is not None:
            await self._require_ids(Category, [category_id], "category")
        if tag_ids:
            await self._require_ids(Tag, tag_ids, "tag")
        if related:
            await self._require_ids(News, [r.news_id for r in related], "news")

    # ------------------------------------------------------------------
    # Child collection writers
    # ------------------------------------------------------------------

    async def _write_blocks(self, news_id: int, blocks: list[BlockIn]) -> None:
        if not blocks:
            return
        self.db.add_all(
            NewsBlock(
                news_id=news_id,
                type=block.type.value,
                content=block.content,
                media_url=block.media_url,
                alt_text=block.alt_text,
                position=block.position if block.position is not None else index,
            )
            for index, block in enumerate(blocks)
        )
        await self.db.flush()

    async def _write_images(self, news_id: int, images: list[ImageIn]) -> None:
        if not images:
            return
        self.db.add_all(
            NewsImage(
                news_id=news_id,
                url=image.url,
                caption=image.caption,
                alt_text=image.alt_text,
                position=image.position if image.position is not None else index,
            )
            for index, image in enumerate(images)
        )
        await self.db.flush()

    async def _write_tags(self, news_id: int, tag_ids: list[int]) -> None:
        # Duplicate ids collapse to one link.
        unique_ids = list(dict.fromkeys(tag_ids))
        if not unique_ids:
            return
        await self.db.execute(
            insert(news_tags),
            [{"news_id": news_id, "tag_id": tag_id} for tag_id in unique_ids],
        )

    async def _write_related(self, news_id: int, related: list[RelatedRef]) -> None:
        links: dict[int, str | None] = {}
        for ref in related:
            links.setdefault(ref.news_id, ref.relation_type)
        if not links:
            return
        await self.db.execute(
            insert(NewsRelated),
            [
                {"news_id": news_id, "related_news_id": rid, "relation_type": rtype}
                for rid, rtype in links.items()
            ],
        )

    async def _clear(self, news_id: int, collection: str) -> None:
        if collection == "blocks":
            stmt = delete(NewsBlock).where(NewsBlock.news_id == news_id)
        elif collection == "images":
            stmt = delete(NewsImage).where(NewsImage.news_id == news_id)
        elif collection == "tags":
            stmt = delete(news_tags).where(news_tags.c.news_id == news_id)
        else:
            stmt = delete(NewsRelated).where(NewsRelated.news_id == news_id)
        await self.db.execute(stmt)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def create_aggregate(self, data: NewsCreate) -> int:
        """
        Insert a news row with a resolved slug plus all of its children.

        Blocks and images without an explicit position take their index in
        the supplied list. Returns the new id.
        """
        await self._check_references(
            data.author_id, data.main_category_id, data.tags, data.related_ids
        )

        fields = data.model_dump(exclude=set(_CHILD_FIELDS) | {"canonical_slug"})
        fields["status"] = NewsStatus(fields["status"]).value
        if fields["status"] == NewsStatus.PUBLISHED.value and fields["published_at"] is None:
            fields["published_at"] = datetime.now(timezone.utc)

        async with self._atomic("create"):
            slug = await self.slugs.resolve(data.canonical_slug, fallback=data.title)
            news = News(**fields, canonical_slug=slug)
            self.db.add(news)
            await self.db.flush()
            if slug is None:
                news.canonical_slug = await self.slugs.ensure_unique(
                    fallback_slug(news.id), exclude_id=news.id
                )
                await self.db.flush()

            await self._write_blocks(news.id, data.blocks)
            await self._write_images(news.id, data.images)
            await self._write_tags(news.id, data.tags)
            await self._write_related(news.id, data.related_ids)

        logger.info("Created news id=%s slug=%s", news.id, news.canonical_slug)
        return news.id

    async def update_aggregate(self, news_id: int, data: NewsUpdate) -> None:
        """
        Apply a partial field update and replace every supplied child
        collection. Omitted fields and collections keep their stored state.
        """
        news = await self.db.get(News, news_id)
        if news is None:
            raise NotFoundError("news", news_id)

        updates = data.model_dump(exclude_unset=True, exclude=set(_CHILD_FIELDS))
        for field in _NOT_NULL_FIELDS:
            if field in updates and updates[field] is None:
                raise ValidationError(f"'{field}' cannot be null", field=field)
        if data.related_ids and any(ref.news_id == news_id for ref in data.related_ids):
            raise ValidationError("A news item cannot be related to itself", field="related_ids")

        await self._check_references(
            updates.get("author_id"),
            updates.get("main_category_id"),
            data.tags,
            data.related_ids,
        )

        slug_supplied = "canonical_slug" in updates
        requested_slug = updates.pop("canonical_slug", None)
        if "status" in updates:
            updates["status"] = NewsStatus(updates["status"]).value

        async with self._atomic("update", news_id):
            for field, value in updates.items():
                setattr(news, field, value)

            if slug_supplied:
                # An explicit null re-derives the slug from the current title.
                news.canonical_slug = await self.slugs.resolve(
                    requested_slug or news.title,
                    exclude_id=news_id,
                    fallback=fallback_slug(news_id),
                )

            if news.status == NewsStatus.PUBLISHED.value and news.published_at is None:
                news.published_at = datetime.now(timezone.utc)
            await self.db.flush()

            if data.blocks is not None:
                await self._clear(news_id, "blocks")
                await self._write_blocks(news_id, data.blocks)
            if data.images is not None:
                await self._clear(news_id, "images")
                await self._write_images(news_id, data.images)
            if data.tags is not None:
                await self._clear(news_id, "tags")
                await self._write_tags(news_id, data.tags)
            if data.related_ids is not None:
                await self._clear(news_id, "related_ids")
                await self._write_related(news_id, data.related_ids)

        logger.info("Updated news id=%s fields=%s", news_id, sorted(updates))

    async def delete_aggregate(self, news_id: int) -> None:
        """
        Delete a news row together with its blocks, images, tag links and
        related links in both directions. Child rows are removed explicitly
        rather than trusting the storage layer to cascade.
        """
        exists = await self.db.execute(select(News.id).where(News.id == news_id))
        if exists.scalar_one_or_none() is None:
            raise NotFoundError("news", news_id)

        async with self._atomic("delete", news_id):
            await self.db.execute(delete(NewsBlock).where(NewsBlock.news_id == news_id))
            await self.db.execute(delete(NewsImage).where(NewsImage.news_id == news_id))
            await self.db.execute(delete(news_tags).where(news_tags.c.news_id == news_id))
            await self.db.execute(
                delete(NewsRelated).where(
                    or_(NewsRelated.news_id == news_id, NewsRelated.related_news_id == news_id)
                )
            )
            await self.db.execute(delete(News).where(News.id == news_id))

        logger.info("Deleted news id=%s", news_id)


# ---------------------------------------------------------------------------
# Slug backfill
# ---------------------------------------------------------------------------

async def backfill_slug(
    db: AsyncSession, news_id: int, title: str | None, slugs: SlugResolver
) -> str | None:
    """
    Derive and persist a slug for a news row that has none.

    Returns the slug written, or None when nothing was written: the row
    already had a slug, is gone, or the update failed.

    Failures are logged and swallowed so the read that triggered the
    backfill still succeeds; the session is rolled back in that case, so
    callers must have serialised anything they need beforehand.
    """
    try:
        slug = await slugs.resolve(title, exclude_id=news_id, fallback=fallback_slug(news_id))
        result = await db.execute(
            update(News)
            .where(News.id == news_id, News.canonical_slug.is_(None))
            .values(canonical_slug=slug)
        )
        await db.flush()
    except (SQLAlchemyError, NewsroomError) as exc:
        await db.rollback()
        logger.warning("Slug backfill failed for news id=%s: %s", news_id, exc)
        return None
    if result.rowcount == 0:
        logger.info("News id=%s already has a slug or no longer exists; backfill skipped", news_id)
        return None
    logger.info("Backfilled slug for news id=%s -> %s", news_id, slug)
    return slug


async def news_missing_slugs(db: AsyncSession) -> list[tuple[int, str]]:
    """Return ``(id, title)`` for every news row that has no slug yet."""
    result = await db.execute(
        select(News.id, News.title).where(News.canonical_slug.is_(None)).order_by(News.id)
    )
    return [(row.id, row.title) for row in result.all()]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def _load_detail(db: AsyncSession, *criteria) -> News | None:
    result = await db.execute(_detail_query().where(*criteria))
    return result.unique().scalar_one_or_none()


async def _serialise_with_backfill(db: AsyncSession, news: News, slugs: SlugResolver | None) -> dict:
    data = _news_detail_to_dict(news)
    if data["canonical_slug"] is None and slugs is not None:
        data["canonical_slug"] = await backfill_slug(db, news.id, news.title, slugs)
    return data


async def get_news(db: AsyncSession, news_id: int, slugs: SlugResolver | None = None) -> dict:
    """
    Return the full aggregate for *news_id*.

    When *slugs* is given and the row has no slug yet, one is derived and
    persisted on the way out (lazy backfill).
    """
    news = await _load_detail(db, News.id == news_id)
    if news is None:
        raise NotFoundError("news", news_id)
    return await _serialise_with_backfill(db, news, slugs)


async def get_news_by_slug(db: AsyncSession, slug: str) -> dict:
    news = await _load_detail(db, News.canonical_slug == slug)
    if news is None:
        raise NotFoundError("news", slug)
    return _news_detail_to_dict(news)


async def find_news(db: AsyncSession, ref: str, slugs: SlugResolver | None = None) -> dict:
    """
    Resolve a public ``/news/<ref>`` path segment: numeric refs are tried as
    ids first, then everything is tried as a canonical slug.
    """
    if ref.isdigit():
        news = await _load_detail(db, News.id == int(ref))
        if news is not None:
            return await _serialise_with_backfill(db, news, slugs)
    return await get_news_by_slug(db, ref)


async def list_news(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "published_at",
    sort_order: str = "desc",
    status: str | None = None,
    category_id: int | None = None,
    author_id: int | None = None,
    is_featured: bool | None = None,
) -> PaginatedResponse:
    """
    Return a filtered, paginated page of news list items.

    The default order is ``published_at`` descending with unpublished rows
    last, then ``created_at`` descending.
    """
    filters = []
    if status is not None:
        filters.append(News.status == status)
    if category_id is not None:
        filters.append(News.main_category_id == category_id)
    if author_id is not None:
        filters.append(News.author_id == author_id)
    if is_featured is not None:
        filters.append(News.is_featured == is_featured)

    count_q = select(func.count()).select_from(News).where(*filters)
    total: int = (await db.execute(count_q)).scalar_one()

    column = getattr(News, sort_by) if sort_by in _SORTABLE_COLUMNS else News.published_at
    primary = desc(column) if sort_order == "desc" else asc(column)
    if column is News.published_at:
        primary = primary.nulls_last()

    q = (
        select(News)
        .where(*filters)
        .options(
            joinedload(News.author),
            joinedload(News.category),
            selectinload(News.images),
        )
        .order_by(primary, News.created_at.desc(), News.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(q)
    items = result.unique().scalars().all()

    return PaginatedResponse(
        items=[_news_to_dict(n) for n in items],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
