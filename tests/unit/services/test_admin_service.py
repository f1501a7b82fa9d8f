"""
Tests for AdminService and the primary admin policy.

Uses the in-memory database.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.core.security import verify_password
from storefront.exceptions import (
    DuplicateUsernameError,
    ForbiddenError,
    NotFoundError,
    WeakPasswordError,
)
from storefront.models import User, UserRole
from storefront.services.admin_service import (
    AdminService,
    bootstrap_primary_admin,
    is_primary_admin,
)
from storefront.services.auth_service import Principal


class TestIsPrimaryAdmin:
    def test_primary_admin_principal(self):
        assert is_primary_admin(Principal(1, "admin@zkrezk.com", UserRole.ADMIN))

    def test_username_compared_case_insensitively(self):
        assert is_primary_admin(Principal(1, "Admin@ZKREZK.com", UserRole.ADMIN))

    def test_other_admin(self):
        assert not is_primary_admin(Principal(2, "equipe@zkrezk.com", UserRole.ADMIN))

    def test_customer_with_primary_email(self):
        assert not is_primary_admin(Principal(3, "admin@zkrezk.com", UserRole.CUSTOMER))

    def test_none(self):
        assert not is_primary_admin(None)


class TestListAdmins:
    @pytest.mark.asyncio
    async def test_lists_only_admins_oldest_first(
        self,
        db_session: AsyncSession,
        primary_admin: User,
        secondary_admin: User,
        customer_user: User,
    ):
        admins = await AdminService(db_session).list_admins()

        assert [a.id for a in admins] == [primary_admin.id, secondary_admin.id]


class TestCreateAdmin:
    @pytest.mark.asyncio
    async def test_creates_verified_admin(self, db_session: AsyncSession):
        admin = await AdminService(db_session).create_admin("Nova@ZKREZK.com", "Admin123!x")

        assert admin.role == UserRole.ADMIN
        assert admin.username == "nova@zkrezk.com"
        assert admin.email_verified is True
        assert verify_password("Admin123!x", admin.password_hash)

    @pytest.mark.asyncio
    async def test_weak_password(self, db_session: AsyncSession):
        with pytest.raises(WeakPasswordError):
            await AdminService(db_session).create_admin("nova@zkrezk.com", "fraca")

    @pytest.mark.asyncio
    async def test_duplicate_username(self, db_session: AsyncSession, customer_user: User):
        with pytest.raises(DuplicateUsernameError):
            await AdminService(db_session).create_admin("CLIENTE@example.com", "Admin123!x")


class TestDeleteAdmin:
    @pytest.mark.asyncio
    async def test_deletes_secondary_admin(
        self, db_session: AsyncSession, primary_admin: User, secondary_admin: User
    ):
        deleted = await AdminService(db_session).delete_admin(secondary_admin.id)

        assert deleted.username == "equipe@zkrezk.com"
        remaining = (await db_session.execute(select(User.id))).scalars().all()
        assert remaining == [primary_admin.id]

    @pytest.mark.asyncio
    async def test_primary_admin_cannot_be_deleted(
        self, db_session: AsyncSession, primary_admin: User
    ):
        with pytest.raises(ForbiddenError) as exc_info:
            await AdminService(db_session).delete_admin(primary_admin.id)

        assert exc_info.value.message == "Não é possível remover o administrador principal"
        assert await db_session.get(User, primary_admin.id) is not None

    @pytest.mark.asyncio
    async def test_missing_user(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await AdminService(db_session).delete_admin(999)

    @pytest.mark.asyncio
    async def test_customer_is_not_an_admin_target(
        self, db_session: AsyncSession, customer_user: User
    ):
        with pytest.raises(NotFoundError):
            await AdminService(db_session).delete_admin(customer_user.id)


class TestBootstrapPrimaryAdmin:
    @pytest.mark.asyncio
    async def test_skipped_without_password(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        assert await bootstrap_primary_admin(session_factory) is None

    @pytest.mark.asyncio
    async def test_creates_primary_admin(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        with patch("storefront.services.admin_service.settings") as mock_settings:
            mock_settings.primary_admin_email = "admin@zkrezk.com"
            mock_settings.primary_admin_password = "Admin123!x"
            admin = await bootstrap_primary_admin(session_factory)

        assert admin.username == "admin@zkrezk.com"
        assert admin.role == UserRole.ADMIN

    @pytest.mark.asyncio
    async def test_existing_account_left_untouched(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        primary_admin: User,
    ):
        original_hash = primary_admin.password_hash

        with patch("storefront.services.admin_service.settings") as mock_settings:
            mock_settings.primary_admin_email = "admin@zkrezk.com"
            mock_settings.primary_admin_password = "Outra123!x"
            assert await bootstrap_primary_admin(session_factory) is None

        async with session_factory() as session:
            stored = await session.get(User, primary_admin.id)
            assert stored.password_hash == original_hash
