from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.config import Settings
from newsroom.database import get_db
from newsroom.models import NewsStatus
from newsroom.services.news_service import AggregateSynchronizer
from newsroom.services.slug_service import SlugResolver
from newsroom.storage import BlobStore


def get_app_settings(request: Request) -> Settings:
    """The Settings instance the running app was built with."""
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_slug_resolver(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SlugResolver:
    return SlugResolver(db, max_attempts=settings.SLUG_MAX_ATTEMPTS)


def get_synchronizer(
    db: AsyncSession = Depends(get_db),
    slugs: SlugResolver = Depends(get_slug_resolver),
) -> AggregateSynchronizer:
    return AggregateSynchronizer(db, slugs)


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates pagination /
    sorting query parameters.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``MAX_PAGE_SIZE`` regardless of
        the value supplied by the caller.
    sort_by:
        Column name to sort by. The service layer maps unknown names back to
        ``published_at``.
    sort_order:
        ``"asc"`` or ``"desc"`` (enforced by the regex pattern).
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int | None = Query(
            None, ge=1, le=100, description="Items per page (default DEFAULT_PAGE_SIZE, max 100)."
        ),
        sort_by: str = Query("published_at", description="Column name to sort results by."),
        sort_order: str = Query(
            "desc", pattern="^(asc|desc)$", description="Sort direction: 'asc' or 'desc'."
        ),
        settings: Settings = Depends(get_app_settings),
    ) -> None:
        self.page = page
        self.page_size = min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order


class NewsFilters:
    """Optional list filters for ``GET /api/v1/news``."""

    def __init__(
        self,
        status: NewsStatus | None = Query(None),
        category_id: int | None = Query(None, ge=1),
        author_id: int | None = Query(None, ge=1),
        is_featured: bool | None = Query(None),
    ) -> None:
        self.status = status.value if status else None
        self.category_id = category_id
        self.author_id = author_id
        self.is_featured = is_featured
