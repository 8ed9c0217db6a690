"""
Category service: CRUD for the self-referencing category tree.

Referential rules are enforced here rather than left to the database: a
parent must exist, a category cannot become its own ancestor, and a
category with children or news cannot be deleted.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.exceptions import ConflictError, NotFoundError, ValidationError
from newsroom.models import Category, News
from newsroom.schemas import CategoryCreate, CategoryUpdate
from newsroom.services.slug_service import SlugResolver

logger = logging.getLogger(__name__)


def _category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "parent_id": category.parent_id,
        "created_at": category.created_at.isoformat() if category.created_at else None,
    }


async def _get_or_404(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("category", category_id)
    return category


async def _check_parent(db: AsyncSession, parent_id: int, category_id: int | None = None) -> None:
    """Reject a missing parent, a self-parent, or a parent inside our own subtree."""
    if category_id is not None and parent_id == category_id:
        raise ValidationError("A category cannot be its own parent", field="parent_id")
    await _get_or_404(db, parent_id)
    if category_id is None:
        return

    seen: set[int] = set()
    current: int | None = parent_id
    while current is not None and current not in seen:
        if current == category_id:
            raise ValidationError(
                "A category cannot be moved under one of its descendants", field="parent_id"
            )
        seen.add(current)
        current = (
            await db.execute(select(Category.parent_id).where(Category.id == current))
        ).scalar_one_or_none()


async def get_categories(db: AsyncSession, parent_id: int | None = None) -> list[dict]:
    """All categories ordered by id, optionally only the children of *parent_id*."""
    q = select(Category).order_by(Category.id)
    if parent_id is not None:
        q = q.where(Category.parent_id == parent_id)
    result = await db.execute(q)
    return [_category_to_dict(c) for c in result.scalars().all()]


async def get_category(db: AsyncSession, category_id: int) -> dict:
    return _category_to_dict(await _get_or_404(db, category_id))


async def create_category(db: AsyncSession, data: CategoryCreate) -> dict:
    if data.parent_id is not None:
        await _check_parent(db, data.parent_id)

    slugs = SlugResolver(db, model=Category, field="slug")
    slug = await slugs.resolve(data.slug, fallback=data.name)
    if slug is None:
        raise ValidationError("Category name does not produce a usable slug", field="name")

    category = Category(
        name=data.name,
        slug=slug,
        description=data.description,
        parent_id=data.parent_id,
    )
    db.add(category)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("A category with this slug already exists") from exc
    await db.refresh(category)
    return _category_to_dict(category)


async def update_category(db: AsyncSession, category_id: int, data: CategoryUpdate) -> dict:
    category = await _get_or_404(db, category_id)
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("parent_id") is not None:
        await _check_parent(db, update_data["parent_id"], category_id)
    if "name" in update_data and update_data["name"] is None:
        raise ValidationError("'name' cannot be null", field="name")

    requested_slug = update_data.pop("slug", None)
    for field, value in update_data.items():
        setattr(category, field, value)

    if requested_slug is not None:
        slugs = SlugResolver(db, model=Category, field="slug")
        slug = await slugs.resolve(requested_slug, exclude_id=category_id, fallback=category.name)
        if slug is not None:
            category.slug = slug

    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("A category with this slug already exists") from exc
    await db.refresh(category)
    return _category_to_dict(category)


async def delete_category(db: AsyncSession, category_id: int) -> None:
    """
    Delete a category that has no child categories and no news.

    Raises ConflictError (and writes nothing) otherwise.
    """
    category = await _get_or_404(db, category_id)

    children = (
        await db.execute(
            select(func.count()).select_from(Category).where(Category.parent_id == category_id)
        )
    ).scalar_one()
    if children:
        raise ConflictError(
            "Cannot delete a category that has subcategories",
            context={"category_id": category_id, "children": children},
        )

    news_count = (
        await db.execute(
            select(func.count()).select_from(News).where(News.main_category_id == category_id)
        )
    ).scalar_one()
    if news_count:
        raise ConflictError(
            "Cannot delete a category that still has news",
            context={"category_id": category_id, "news": news_count},
        )

    await db.delete(category)
    await db.flush()
    logger.info("Deleted category id=%s", category_id)
