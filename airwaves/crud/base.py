"""
Generic async CRUD base class.
All domain-specific CRUD classes extend CRUDBase and inherit these methods.
"""
from __future__ import annotations

import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from airwaves.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


def as_uuid(value: uuid.UUID | str | None) -> uuid.UUID | None:
    """Parse ``value`` into a UUID, returning None for blanks and malformed ids."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class CRUDBase(Generic[ModelType]):
    """
    Generic CRUD operations for SQLAlchemy async ORM models.

    Type parameters:
        ModelType: The SQLAlchemy ORM model class.
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model = model

    async def get(self, db: AsyncSession, id: uuid.UUID | str) -> ModelType | None:
        """Fetch a single record by primary key. Malformed ids read as missing."""
        key = as_uuid(id)
        if key is None:
            return None
        result = await db.execute(select(self.model).where(self.model.id == key))  # type: ignore[attr-defined]
        return result.scalar_one_or_none()

    async def exists(self, db: AsyncSession, **filters: Any) -> bool:
        """Return True if any record matches the given keyword filters."""
        query = select(func.count()).select_from(self.model)
        for attr, value in filters.items():
            query = query.where(getattr(self.model, attr) == value)
        result = await db.execute(query)
        return (result.scalar_one() or 0) > 0
