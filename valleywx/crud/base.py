"""
Base CRUD operations.

Shared pieces for the model CRUD classes: a generic base bound to a model,
and the dialect-aware INSERT used for insert-only tables and upserts.
"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from valleywx.database import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


def dialect_insert(db: AsyncSession, model: Type[Base]):
    """
    Build an INSERT supporting ON CONFLICT for the session's backend.

    Args:
        db: Database session
        model: Target model class

    Returns:
        PostgreSQL or SQLite Insert construct
    """
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    """
    Base CRUD class for a single model.

    Subclasses add the domain queries; the base only knows how to fetch by
    primary key and insert a plain row.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Get a single record by ID.

        Args:
            db: Database session
            id: Record ID

        Returns:
            Model instance or None if not found
        """
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalars().first()

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        if isinstance(obj_in, dict):
            data = obj_in
        else:
            data = obj_in.model_dump()
        db_obj = self.model(**data)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj
