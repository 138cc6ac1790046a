"""Base repository with common CRUD operations.

Provides generic database operations inherited by model-specific
repositories. Uses SQLAlchemy 2.0's async API.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_ledger.db.base import Base

# Generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations.

    Repositories do NOT manage transactions: the caller opens the
    ``transactional()`` scope and decides when to commit.

    Type Parameters:
        ModelType: The SQLAlchemy model class

    Example:
        >>> class LotRepository(BaseRepository[Lot]):
        ...     pass
        >>>
        >>> repo = LotRepository(Lot, db)
        >>> lot = await repo.get(lot_id)
    """

    def __init__(self, model: type[ModelType], db: AsyncSession):
        """Initialize repository.

        Args:
            model: The SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def get(self, id: Any) -> ModelType | None:
        """Get a single record by primary key, or None."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    async def create(self, *, obj_in: BaseModel | dict[str, Any]) -> ModelType:
        """Create a new record from a Pydantic model or a dictionary.

        The row is flushed so its generated id is available, but not
        committed.

        Example:
            >>> lot = await repo.create(obj_in={"owner_id": 1, "symbol": "EMAAR", ...})
            >>> lot.id
            12
        """
        if isinstance(obj_in, BaseModel):
            create_data = obj_in.model_dump(exclude_unset=True)
        else:
            create_data = obj_in

        db_obj = self.model(**create_data)
        self.db.add(db_obj)
        await self.db.flush()
        await self.db.refresh(db_obj)
        return db_obj

    async def delete(self, *, db_obj: ModelType) -> None:
        """Delete a loaded record (not yet committed)."""
        await self.db.delete(db_obj)
        await self.db.flush()
