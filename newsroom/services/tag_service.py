"""Tag service: CRUD for tags. Deleting a tag drops its news links."""
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.exceptions import ConflictError, NotFoundError, ValidationError
from newsroom.models import Tag, news_tags
from newsroom.schemas import TagCreate, TagUpdate
from newsroom.services.slug_service import SlugResolver


def _tag_to_dict(tag: Tag) -> dict:
    return {"id": tag.id, "name": tag.name, "slug": tag.slug}


async def _get_or_404(db: AsyncSession, tag_id: int) -> Tag:
    tag = await db.get(Tag, tag_id)
    if tag is None:
        raise NotFoundError("tag", tag_id)
    return tag


async def _flush_or_conflict(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("A tag with this name already exists") from exc


async def get_tags(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Tag).order_by(Tag.name))
    return [_tag_to_dict(t) for t in result.scalars().all()]


async def get_tag(db: AsyncSession, tag_id: int) -> dict:
    return _tag_to_dict(await _get_or_404(db, tag_id))


async def create_tag(db: AsyncSession, data: TagCreate) -> dict:
    slug = await SlugResolver(db, model=Tag, field="slug").resolve(data.slug, fallback=data.name)
    if slug is None:
        raise ValidationError("Tag name does not produce a usable slug", field="name")
    tag = Tag(name=data.name.strip(), slug=slug)
    db.add(tag)
    await _flush_or_conflict(db)
    return _tag_to_dict(tag)


async def update_tag(db: AsyncSession, tag_id: int, data: TagUpdate) -> dict:
    tag = await _get_or_404(db, tag_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        tag.name = update_data["name"].strip()
    if update_data.get("slug") is not None:
        slug = await SlugResolver(db, model=Tag, field="slug").resolve(
            update_data["slug"], exclude_id=tag_id, fallback=tag.name
        )
        if slug is not None:
            tag.slug = slug
    await _flush_or_conflict(db)
    return _tag_to_dict(tag)


async def delete_tag(db: AsyncSession, tag_id: int) -> None:
    tag = await _get_or_404(db, tag_id)
    await db.execute(delete(news_tags).where(news_tags.c.tag_id == tag_id))
    await db.delete(tag)
    await db.flush()
