"""
Author service: CRUD for the Author entity.

Email uniqueness is enforced by the database; the resulting integrity
error is translated into ConflictError here so routers stay thin.
"""
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.exceptions import ConflictError, NotFoundError, ValidationError
from newsroom.models import Author, News
from newsroom.schemas import AuthorCreate, AuthorUpdate


def _author_to_dict(author: Author) -> dict:
    return {
        "id": author.id,
        "name": author.name,
        "email": author.email,
        "bio": author.bio,
        "avatar_url": author.avatar_url,
        "created_at": author.created_at.isoformat() if author.created_at else None,
    }


async def _get_or_404(db: AsyncSession, author_id: int) -> Author:
    author = await db.get(Author, author_id)
    if author is None:
        raise NotFoundError("author", author_id)
    return author


async def _flush_or_conflict(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("An author with this email already exists") from exc


async def get_authors(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Author).order_by(Author.name))
    return [_author_to_dict(a) for a in result.scalars().all()]


async def get_author(db: AsyncSession, author_id: int) -> dict:
    return _author_to_dict(await _get_or_404(db, author_id))


async def create_author(db: AsyncSession, data: AuthorCreate) -> dict:
    author = Author(**data.model_dump())
    db.add(author)
    await _flush_or_conflict(db)
    await db.refresh(author)
    return _author_to_dict(author)


async def update_author(db: AsyncSession, author_id: int, data: AuthorUpdate) -> dict:
    author = await _get_or_404(db, author_id)
    update_data = data.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] is None:
        raise ValidationError("'name' cannot be null", field="name")
    for field, value in update_data.items():
        setattr(author, field, value)
    await _flush_or_conflict(db)
    await db.refresh(author)
    return _author_to_dict(author)


async def delete_author(db: AsyncSession, author_id: int) -> None:
    """Delete an author; refused with ConflictError while any news references it."""
    author = await _get_or_404(db, author_id)
    referenced = (
        await db.execute(select(func.count()).select_from(News).where(News.author_id == author_id))
    ).scalar_one()
    if referenced:
        raise ConflictError(
            "Cannot delete an author who still has news",
            context={"author_id": author_id, "news": referenced},
        )
    await db.delete(author)
    await db.flush()
