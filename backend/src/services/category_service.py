"""Service layer for category operations."""
import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.category import Category
from models.note import Note
from schemas.base import dump
from schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from services.exceptions import (
    CategoryExistsError,
    CategoryInUseError,
    CategoryNotFoundError,
)
from services.utils import generate_unique_slug

logger = logging.getLogger(__name__)


def _published_count():
    return (
        select(func.count(Note.id))
        .where(Note.category_id == Category.id, Note.published.is_(True))
        .correlate(Category)
        .scalar_subquery()
    )


def _response(category: Category, note_count: int) -> dict:
    return dump(
        CategoryResponse(
            id=category.id,
            name=category.name,
            slug=category.slug,
            color=category.color,
            description=category.description,
            note_count=note_count,
            created_at=category.created_at,
            updated_at=category.updated_at,
        ),
    )


async def list_categories(db: AsyncSession) -> list[dict]:
    """All categories by name, each with its published note count."""
    rows = await db.execute(
        select(Category, _published_count().label("note_count")).order_by(Category.name),
    )
    return [_response(c, count) for c, count in rows.all()]


async def _get_with_count(db: AsyncSession, category_id: UUID) -> tuple[Category, int]:
    row = (
        await db.execute(
            select(Category, _published_count().label("note_count"))
            .where(Category.id == category_id),
        )
    ).first()
    if row is None:
        raise CategoryNotFoundError()
    return row[0], row[1]


async def get_category(db: AsyncSession, category_id: UUID) -> dict:
    category, count = await _get_with_count(db, category_id)
    return _response(category, count)


async def _name_taken(db: AsyncSession, name: str, exclude_id: UUID | None = None) -> bool:
    query = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    return (await db.execute(query.limit(1))).first() is not None


async def _flush_category(db: AsyncSession, category: Category) -> None:
    try:
        async with db.begin_nested():
            db.add(category)
    except IntegrityError as e:
        raise CategoryExistsError() from e


async def create_category(db: AsyncSession, data: CategoryCreate) -> dict:
    """
    Create a category.

    Raises:
        CategoryExistsError: If a category with this name already exists.
    """
    if await _name_taken(db, data.name):
        raise CategoryExistsError()
    category = Category(
        name=data.name,
        slug=await generate_unique_slug(db, Category, data.name, fallback="category"),
        description=data.description,
        color=data.color,
    )
    await _flush_category(db, category)
    logger.info("category_created", extra={"category": data.name})
    return _response(category, 0)


async def update_category(db: AsyncSession, category_id: UUID, data: CategoryUpdate) -> dict:
    """
    Partially update a category; a new name also regenerates the slug.

    Raises:
        CategoryNotFoundError: If the category does not exist.
        CategoryExistsError: If another category already has the new name.
    """
    category, count = await _get_with_count(db, category_id)
    fields = data.model_fields_set

    if "name" in fields and data.name is not None and data.name != category.name:
        if await _name_taken(db, data.name, exclude_id=category.id):
            raise CategoryExistsError()
        category.name = data.name
        category.slug = await generate_unique_slug(
            db, Category, data.name, exclude_id=category.id, fallback="category",
        )
    if "description" in fields:
        category.description = data.description
    if "color" in fields and data.color is not None:
        category.color = data.color

    await _flush_category(db, category)
    return _response(category, count)


async def delete_category(db: AsyncSession, category_id: UUID) -> None:
    """
    Delete a category with no notes.

    Raises:
        CategoryNotFoundError: If the category does not exist.
        CategoryInUseError: If any note (published or not) is in the category.
    """
    category, _ = await _get_with_count(db, category_id)
    usage = await db.scalar(select(func.count(Note.id)).where(Note.category_id == category_id))
    if usage:
        raise CategoryInUseError(usage)
    await db.delete(category)
    await db.flush()
