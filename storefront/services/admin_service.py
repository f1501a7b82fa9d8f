"""
Admin management service.

This module provides:
- The primary admin policy (``is_primary_admin``)
- Listing, creating and deleting admin accounts
- Bootstrapping the primary admin account at startup
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.core.config import settings
from storefront.core.security import ensure_password_acceptable, hash_password_async
from storefront.exceptions import DuplicateUsernameError, ForbiddenError, NotFoundError
from storefront.models.enums import UserRole
from storefront.models.user import User
from storefront.repositories.user_repository import UserRepository, normalize_username
from storefront.services.auth_service import Principal

logger = logging.getLogger(__name__)


def is_primary_admin(user: User | Principal | None) -> bool:
    """
    Whether the user is the primary admin.

    The primary admin is the admin whose username matches
    ``settings.primary_admin_email``. It alone may add or remove admins
    and it can never be deleted.
    """
    if user is None or user.role != UserRole.ADMIN:
        return False
    return normalize_username(user.username) == settings.primary_admin_email


class AdminService:
    """
    Service class for admin account management.

    Authorization (admin / primary admin) is enforced by the route
    dependencies; this service enforces the business rules.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)

    async def list_admins(self) -> list[User]:
        return await self.user_repo.list_admins()

    async def create_admin(self, username: str, password: str) -> User:
        """
        Create an admin account.

        Admin accounts are created already verified; there is no
        verification email for them.

        Raises:
            WeakPasswordError: Password fails the policy
            DuplicateUsernameError: Username already taken
        """
        ensure_password_acceptable(password)

        if await self.user_repo.get_by_username(username) is not None:
            raise DuplicateUsernameError()

        password_hash = await hash_password_async(password)
        admin = await self.user_repo.create(
            username=username,
            password_hash=password_hash,
            role=UserRole.ADMIN,
            email_verified=True,
        )
        await self.session.commit()

        logger.info(f"Admin created: {admin.id} ({admin.username})")
        return admin

    async def delete_admin(self, user_id: int) -> User:
        """
        Delete an admin account.

        Returns:
            The deleted user (detached, for audit details)

        Raises:
            NotFoundError: No admin with that id
            ForbiddenError: Target is the primary admin
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None or user.role != UserRole.ADMIN:
            raise NotFoundError()

        if is_primary_admin(user):
            logger.warning(f"Refused to delete primary admin {user.id}")
            raise ForbiddenError("Não é possível remover o administrador principal")

        await self.user_repo.delete_by_id(user.id)
        await self.session.commit()

        logger.info(f"Admin deleted: {user.id} ({user.username})")
        return user


async def bootstrap_primary_admin(session_factory: async_sessionmaker[AsyncSession]) -> User | None:
    """
    Create the primary admin account if it is configured and missing.

    Runs once at startup. Nothing happens unless PRIMARY_ADMIN_PASSWORD is
    set. An existing account is left untouched, whatever its password.

    Returns:
        The created admin, or None when nothing was created
    """
    if not settings.primary_admin_password:
        logger.debug("PRIMARY_ADMIN_PASSWORD not set, skipping admin bootstrap")
        return None

    async with session_factory() as session:
        user_repo = UserRepository(session)
        existing = await user_repo.get_by_username(settings.primary_admin_email)
        if existing is not None:
            if existing.role != UserRole.ADMIN:
                logger.warning(
                    f"Primary admin email {settings.primary_admin_email} belongs to a customer account"
                )
            return None

        admin = await AdminService(session).create_admin(
            settings.primary_admin_email,
            settings.primary_admin_password,
        )

    logger.info(f"Primary admin bootstrapped: {admin.username}")
    return admin
