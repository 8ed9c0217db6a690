"""
Slug resolver: derives URL-safe slugs from free text and makes them unique.

``derive_slug`` is pure. ``SlugResolver.ensure_unique`` queries the table
for collisions and walks ``base``, ``base-1``, ``base-2``, ... up to a bound.
It is a best-effort pre-check for a readable slug; the UNIQUE constraint on
the slug column remains the authority against concurrent writers.
"""
import logging
import re
import unicodedata

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.exceptions import SlugExhaustedError
from newsroom.models import News

logger = logging.getLogger(__name__)

_SLUG_SPACE_RE = re.compile(r"\s+")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9_-]")
_SLUG_DASH_RE = re.compile(r"-{2,}")

DEFAULT_MAX_ATTEMPTS = 100


def derive_slug(text: str | None) -> str:
    """
    Return a lowercase slug for *text*, or ``""`` when nothing usable is left.

    >>> derive_slug("Café con Leche!!")
    'cafe-con-leche'
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    text = text.lower().strip()
    text = _SLUG_SPACE_RE.sub("-", text)
    text = _SLUG_STRIP_RE.sub("", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-")


def fallback_slug(news_id: int) -> str:
    """Seed used when a title yields an empty slug."""
    return f"news-{news_id}"


class SlugResolver:
    """
    Resolves unique slugs against one slug column.

    Defaults to ``News.canonical_slug``; categories and tags reuse it with
    their own model and column.
    """

    def __init__(
        self,
        db: AsyncSession,
        model=News,
        field: str = "canonical_slug",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.db = db
        self.model = model
        self.column = getattr(model, field)
        self.max_attempts = max_attempts

    async def is_taken(self, slug: str, exclude_id: int | None = None) -> bool:
        q = select(self.model.id).where(self.column == slug)
        if exclude_id is not None:
            q = q.where(self.model.id != exclude_id)
        result = await self.db.execute(q.limit(1))
        return result.scalar_one_or_none() is not None

    async def ensure_unique(self, base_slug: str, exclude_id: int | None = None) -> str:
        """
        Return *base_slug* if free, otherwise the first free ``base_slug-N``.

        Raises SlugExhaustedError after ``max_attempts`` candidates.
        """
        candidate = base_slug
        for counter in range(1, self.max_attempts + 1):
            if not await self.is_taken(candidate, exclude_id):
                return candidate
            candidate = f"{base_slug}-{counter}"
        logger.warning(
            "Slug space exhausted for %r on %s after %d attempts",
            base_slug,
            self.model.__tablename__,
            self.max_attempts,
        )
        raise SlugExhaustedError(base_slug, self.max_attempts)

    async def resolve(
        self,
        text: str | None,
        exclude_id: int | None = None,
        fallback: str | None = None,
    ) -> str | None:
        """
        Derive a slug from *text* (or *fallback* when that is empty) and make
        it unique. Returns None when neither yields anything.
        """
        base = derive_slug(text) or derive_slug(fallback)
        if not base:
            return None
        return await self.ensure_unique(base, exclude_id)
