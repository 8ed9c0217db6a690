from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.config import Settings
from newsroom.database import get_db
from newsroom.dependencies import (
    NewsFilters,
    PaginationParams,
    get_app_settings,
    get_blob_store,
    get_slug_resolver,
    get_synchronizer,
)
from newsroom.schemas import (
    ImageResponse,
    NewsCreate,
    NewsDetail,
    NewsUpdate,
    PaginatedResponse,
)
from newsroom.services import image_service, news_service
from newsroom.services.news_service import AggregateSynchronizer
from newsroom.services.slug_service import SlugResolver
from newsroom.storage import BlobStore

router = APIRouter(prefix="/api/v1/news", tags=["news"])


@router.get("", response_model=PaginatedResponse)
async def list_news(
    pagination: PaginationParams = Depends(),
    filters: NewsFilters = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.list_news(
        db,
        pagination.page,
        pagination.page_size,
        pagination.sort_by,
        pagination.sort_order,
        status=filters.status,
        category_id=filters.category_id,
        author_id=filters.author_id,
        is_featured=filters.is_featured,
    )


@router.get("/slug/{slug}", response_model=NewsDetail)
async def get_news_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    return await news_service.get_news_by_slug(db, slug)


@router.get("/{news_id}", response_model=NewsDetail)
async def get_news(
    news_id: int,
    db: AsyncSession = Depends(get_db),
    slugs: SlugResolver = Depends(get_slug_resolver),
):
    return await news_service.get_news(db, news_id, slugs)


@router.post("", status_code=201, response_model=NewsDetail)
async def create_news(
    data: NewsCreate,
    db: AsyncSession = Depends(get_db),
    sync: AggregateSynchronizer = Depends(get_synchronizer),
):
    news_id = await sync.create_aggregate(data)
    return await news_service.get_news(db, news_id)


@router.put("/{news_id}", response_model=NewsDetail)
async def update_news(
    news_id: int,
    data: NewsUpdate,
    db: AsyncSession = Depends(get_db),
    sync: AggregateSynchronizer = Depends(get_synchronizer),
):
    await sync.update_aggregate(news_id, data)
    return await news_service.get_news(db, news_id)


@router.delete("/{news_id}", status_code=204)
async def delete_news(news_id: int, sync: AggregateSynchronizer = Depends(get_synchronizer)):
    await sync.delete_aggregate(news_id)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@router.get("/{news_id}/images", response_model=list[ImageResponse])
async def list_images(news_id: int, db: AsyncSession = Depends(get_db)):
    return await image_service.list_images(db, news_id)


@router.post("/{news_id}/images", status_code=201, response_model=ImageResponse)
async def upload_image(
    news_id: int,
    image: UploadFile = File(...),
    caption: str | None = Form(None),
    alt_text: str | None = Form(None),
    position: int = Form(0),
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
):
    # Read one byte past the limit so oversized uploads are rejected without
    # buffering the whole body.
    content = await image.read(settings.MAX_UPLOAD_SIZE + 1)
    return await image_service.add_image(
        db,
        store,
        news_id,
        content,
        image.filename or "",
        content_type=image.content_type,
        caption=caption,
        alt_text=alt_text,
        position=position,
        max_size=settings.MAX_UPLOAD_SIZE,
    )


@router.delete("/{news_id}/images/{image_id}", status_code=204)
async def delete_image(
    news_id: int,
    image_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    # Runs after get_db has committed the row delete.
    url = await image_service.delete_image(db, news_id, image_id)
    background_tasks.add_task(image_service.discard_blob, store, url)
