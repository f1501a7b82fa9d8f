"""
User repository (credential store).

This module provides database operations for the User model: lookups for
authentication, account creation with username uniqueness, admin listing
and password/verification updates. It only ever receives password hashes.
"""

import logging
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import DuplicateUsernameError
from storefront.models.enums import UserRole
from storefront.models.user import User
from storefront.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    """Usernames are email addresses; compare them case-insensitively."""
    return username.strip().lower()


class UserRepository(BaseRepository[User]):
    """
    Repository for User model operations.

    Extends BaseRepository with user-specific queries:
    - Username lookups (for authentication)
    - Creation with duplicate detection
    - Admin listing and deletion (for admin management)
    - Targeted updates used inside token consumption
    """

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_username(self, username: str) -> User | None:
        """
        Get user by username (email address).

        Example:
            user = await user_repo.get_by_username("cliente@example.com")
        """
        result = await self.session.execute(
            select(User)
            .where(User.username == normalize_username(username))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        username: str,
        password_hash: str,
        role: UserRole,
        **extra: Any,
    ) -> User:
        """
        Create a user.

        Args:
            username: Login identifier (normalized to lower case)
            password_hash: Argon2id hash, never the plain password
            role: admin or customer
            **extra: Optional columns (email_verified, consent timestamps...)

        Returns:
            Persisted User

        Raises:
            DuplicateUsernameError: If the username is taken, including when
                a concurrent insert trips the unique constraint
        """
        username = normalize_username(username)
        if await self.get_by_username(username) is not None:
            raise DuplicateUsernameError()

        user = User(username=username, password_hash=password_hash, role=role, **extra)
        try:
            return await self.add(user)
        except IntegrityError:
            await self.session.rollback()
            logger.warning(f"Unique constraint rejected username {username}")
            raise DuplicateUsernameError()

    async def list_admins(self) -> list[User]:
        """Return all admin accounts, oldest first."""
        result = await self.session.execute(
            select(User).where(User.role == UserRole.ADMIN).order_by(User.id)
        )
        return list(result.scalars().all())

    async def delete_by_id(self, user_id: int) -> bool:
        """
        Delete a user permanently.

        Their tokens go with them; audit entries keep a NULL user id.

        Returns:
            True if a row was deleted
        """
        result = await self.session.execute(delete(User).where(User.id == user_id))
        await self.session.flush()
        return result.rowcount == 1

    async def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        """Replace the stored hash. Returns False if the user no longer exists."""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_email_verified(self, user_id: int) -> bool:
        """Flag the email as confirmed. Returns False if the user no longer exists."""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(email_verified=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update_marketing_opt_in(self, user: User, opt_in: bool) -> User:
        user.marketing_opt_in = opt_in
        return await self.update(user)
