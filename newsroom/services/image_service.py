"""
Image service: uploads into the blob store and the ``news_images`` rows
that point at them.

The blob is written before the row; if the row insert fails the blob is
removed again. On delete the row goes first; the blob is discarded only
after the transaction commits, and a leftover file is only logged.
"""
import logging
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.exceptions import NotFoundError, TransientError, ValidationError
from newsroom.models import News, NewsImage
from newsroom.storage import BlobStore

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})


def _image_to_dict(image: NewsImage) -> dict:
    return {
        "id": image.id,
        "news_id": image.news_id,
        "url": image.url,
        "caption": image.caption,
        "alt_text": image.alt_text,
        "position": image.position,
    }


def validate_upload(filename: str, content_type: str | None, size: int, max_size: int) -> None:
    """Raise ValidationError unless the upload is an allowed image within the size limit."""
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"File type '{ext or filename}' is not supported. "
            f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
            field="image",
        )
    if content_type and content_type.lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"Content type '{content_type}' is not supported", field="image")
    if size == 0:
        raise ValidationError("The uploaded file is empty", field="image")
    if size > max_size:
        raise ValidationError(
            f"File size exceeds maximum of {max_size // (1024 * 1024)}MB",
            field="image",
            context={"max_size": max_size, "size": size},
        )


async def _require_news(db: AsyncSession, news_id: int) -> None:
    found = await db.execute(select(News.id).where(News.id == news_id))
    if found.scalar_one_or_none() is None:
        raise NotFoundError("news", news_id)


async def list_images(db: AsyncSession, news_id: int) -> list[dict]:
    await _require_news(db, news_id)
    result = await db.execute(
        select(NewsImage)
        .where(NewsImage.news_id == news_id)
        .order_by(NewsImage.position, NewsImage.id)
    )
    return [_image_to_dict(img) for img in result.scalars().all()]


async def add_image(
    db: AsyncSession,
    store: BlobStore,
    news_id: int,
    data: bytes,
    filename: str,
    content_type: str | None = None,
    caption: str | None = None,
    alt_text: str | None = None,
    position: int = 0,
    max_size: int = 10 * 1024 * 1024,
) -> dict:
    """Validate, store the blob, then record it as an image of *news_id*."""
    if position < 0:
        raise ValidationError("position must be zero or greater", field="position")
    validate_upload(filename, content_type, len(data), max_size)
    await _require_news(db, news_id)

    url = await store.upload(data, filename, content_type)
    image = NewsImage(
        news_id=news_id, url=url, caption=caption, alt_text=alt_text, position=position
    )
    db.add(image)
    try:
        await db.flush()
    except SQLAlchemyError as exc:
        await db.rollback()
        await store.delete(url)
        raise TransientError(context={"news_id": news_id}) from exc
    return _image_to_dict(image)


async def delete_image(db: AsyncSession, news_id: int, image_id: int) -> str:
    """
    Delete the image row and return its blob URL.

    The blob itself is left in place: the caller discards it with
    ``discard_blob`` once the transaction has committed, so a failed commit
    never leaves a row pointing at a missing file.
    """
    result = await db.execute(
        select(NewsImage).where(NewsImage.id == image_id, NewsImage.news_id == news_id)
    )
    image = result.scalar_one_or_none()
    if image is None:
        raise NotFoundError("image", image_id)

    url = image.url
    await db.delete(image)
    await db.flush()
    return url


async def discard_blob(store: BlobStore, url: str) -> None:
    """Best-effort blob removal after the owning row is gone; failures are only logged."""
    try:
        await store.delete(url)
    except OSError as exc:
        logger.error("Could not delete blob %s: %s", url, exc)
