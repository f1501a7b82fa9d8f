"""
Tests for AccountService (consent management and data export).

Uses the in-memory database.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import NotFoundError
from storefront.models import User
from storefront.models.enums import AuditAction
from storefront.services.account_service import AccountService
from storefront.services.audit_service import AuditService


class TestGetUser:
    @pytest.mark.asyncio
    async def test_missing_user(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await AccountService(db_session).get_user(999)


class TestMarketingConsent:
    @pytest.mark.asyncio
    async def test_opt_in(self, db_session: AsyncSession, customer_user: User):
        user, previous = await AccountService(db_session).update_marketing_consent(
            customer_user.id, True
        )

        assert previous is False
        assert user.marketing_opt_in is True

    @pytest.mark.asyncio
    async def test_unchanged_value(self, db_session: AsyncSession, customer_user: User):
        user, previous = await AccountService(db_session).update_marketing_consent(
            customer_user.id, False
        )

        assert previous is False
        assert user.marketing_opt_in is False


class TestConsentHistory:
    @pytest.mark.asyncio
    async def test_only_consent_entries_newest_first(
        self, db_session: AsyncSession, customer_user: User
    ):
        audit = AuditService(db_session)
        await audit.record(customer_user.id, AuditAction.CONSENT_UPDATE, details={"n": 1})
        await audit.record(customer_user.id, AuditAction.LOGIN)
        await audit.record(customer_user.id, AuditAction.CONSENT_UPDATE, details={"n": 2})

        history = await AccountService(db_session).consent_history(customer_user.id)

        assert [entry.details["n"] for entry in history] == [2, 1]


class TestExportData:
    @pytest.mark.asyncio
    async def test_contains_profile_and_full_trail(
        self, db_session: AsyncSession, customer_user: User
    ):
        audit = AuditService(db_session)
        await audit.record(customer_user.id, AuditAction.REGISTER)
        await audit.record(customer_user.id, AuditAction.LOGIN)

        data = await AccountService(db_session).export_data(customer_user.id)

        assert data["user"].id == customer_user.id
        assert {entry.action for entry in data["audit_logs"]} == {
            AuditAction.REGISTER,
            AuditAction.LOGIN,
        }
