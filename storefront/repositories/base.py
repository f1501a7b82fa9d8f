"""
Base repository with generic CRUD operations.

This module provides a generic repository pattern for database operations.
Repositories flush but never commit; the calling service owns the
transaction boundary.

Type Parameters:
    ModelType: The SQLAlchemy model class (e.g., User, Subscriber)
"""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.base import Base

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository for database operations.

    Usage:
        class UserRepository(BaseRepository[User]):
            def __init__(self, session: AsyncSession):
                super().__init__(User, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def add(self, instance: ModelType) -> ModelType:
        """
        Persist a model instance.

        Returns:
            Persisted model instance (with ID and defaults populated)
        """
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: int) -> ModelType | None:
        """
        Get a record by ID.

        Example:
            user = await user_repo.get_by_id(user_id)
            if user is None:
                raise NotFoundError()
        """
        query = (
            select(self.model)
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def update(self, instance: ModelType) -> ModelType:
        """
        Persist changes to an already-modified model instance.

        The caller modifies attributes first; this only flushes and refreshes.
        """
        await self.session.flush()
        await self.session.refresh(instance)
        return instance
