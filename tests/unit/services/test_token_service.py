"""
Tests for one-time token lifecycle management.

Runs against the in-memory database: issue, validate and consume touch
several tables and depend on conditional updates.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.security import hash_password, hash_token, verify_password
from storefront.exceptions import TokenExpiredError, TokenInvalidError
from storefront.models import User
from storefront.models.base import utcnow
from storefront.models.tokens import EmailVerificationToken, PasswordResetToken
from storefront.services.token_service import (
    EmailVerificationTokenManager,
    PasswordResetTokenManager,
    TokenValidation,
)


async def expire_token(session: AsyncSession, model: type, raw_token: str) -> None:
    await session.execute(
        update(model)
        .where(model.token_hash == hash_token(raw_token))
        .values(expires_at=utcnow() - timedelta(minutes=1))
    )
    await session.commit()


# ============================================================================
# Issue
# ============================================================================
class TestIssue:
    @pytest.mark.asyncio
    async def test_stores_only_the_digest(
        self, db_session: AsyncSession, customer_user: User
    ) -> None:
        manager = PasswordResetTokenManager(db_session)

        raw = await manager.issue(customer_user.id)

        rows = (await db_session.execute(select(PasswordResetToken))).scalars().all()
        assert len(rows) == 1
        assert rows[0].token_hash == hash_token(raw)
        assert rows[0].token_hash != raw
        assert rows[0].used is False

    @pytest.mark.asyncio
    async def test_reset_token_expires_in_one_hour(
        self, db_session: AsyncSession, customer_user: User
    ) -> None:
        manager = PasswordResetTokenManager(db_session)
        before = utcnow()

        raw = await manager.issue(customer_user.id)

        token = await manager.token_repo.get_by_hash(hash_token(raw))
        assert timedelta(minutes=59) < token.expires_at - before <= timedelta(minutes=61)

    @pytest.mark.asyncio
    async def test_verification_token_expires_in_one_day(
        self, db_session: AsyncSession, unverified_customer: User
    ) -> None:
        manager = EmailVerificationTokenManager(db_session)
        before = utcnow()

        raw = await manager.issue(unverified_customer.id)

        token = await manager.token_repo.get_by_hash(hash_token(raw))
        assert timedelta(hours=23) < token.expires_at - before <= timedelta(hours=25)

    @pytest.mark.asyncio
    async def test_new_token_replaces_previous_ones(
        self, db_session: AsyncSession, customer_user: User
    ) -> None:
        manager = PasswordResetTokenManager(db_session)

        first = await manager.issue(customer_user.id)
        second = await manager.issue(customer_user.id)

        assert first != second
        rows = await db_session.execute(
            select(PasswordResetToken).where(PasswordResetToken.user_id == customer_user.id)
        )
        assert len(rows.scalars().all()) == 1
        assert (await manager.validate(first)).reason == "not_found"
        assert (await manager.validate(second)).valid

    @pytest.mark.asyncio
    async def test_token_tables_are_independent(
        self, db_session: AsyncSession, unverified_customer: User
    ) -> None:
        reset = PasswordResetTokenManager(db_session)
        verification = EmailVerificationTokenManager(db_session)

        reset_token = await reset.issue(unverified_customer.id)
        await verification.issue(unverified_customer.id)

        assert (await reset.validate(reset_token)).valid
        assert (await verification.validate(reset_token)).reason == "not_found"


# ============================================================================
# Validate
# ============================================================================
class TestValidate:
    @pytest.mark.asyncio
    async def test_valid_token(self, db_session: AsyncSession, customer_user: User) -> None:
        manager = PasswordResetTokenManager(db_session)
        raw = await manager.issue(customer_user.id)

        result = await manager.validate(raw)

        assert result.valid
        assert result.user_id == customer_user.id

    @pytest.mark.asyncio
    async def test_unknown_token(self, db_session: AsyncSession) -> None:
        result = await PasswordResetTokenManager(db_session).validate("nope")

        assert not result.valid
        assert result.reason == "not_found"

    @pytest.mark.asyncio
    async def test_expired_token(self, db_session: AsyncSession, customer_user: User) -> None:
        manager = PasswordResetTokenManager(db_session)
        raw = await manager.issue(customer_user.id)
        await expire_token(db_session, PasswordResetToken, raw)

        result = await manager.validate(raw)

        assert not result.valid
        assert result.reason == "expired"

    @pytest.mark.asyncio
    async def test_validation_does_not_consume(
        self, db_session: AsyncSession, customer_user: User
    ) -> None:
        manager = PasswordResetTokenManager(db_session)
        raw = await manager.issue(customer_user.id)

        await manager.validate(raw)
        await manager.validate(raw)

        assert (await manager.validate(raw)).valid


class TestRaiseFor:
    def test_expired_has_its_own_message(self) -> None:
        manager = PasswordResetTokenManager.__new__(PasswordResetTokenManager)

        with pytest.raises(TokenExpiredError) as exc_info:
            manager.raise_for(TokenValidation(valid=False, reason="expired"))
        assert "expirado" in exc_info.value.message

    def test_unknown_and_used_share_a_message(self) -> None:
        manager = PasswordResetTokenManager.__new__(PasswordResetTokenManager)
        messages = set()

        for reason in ("not_found", "already_used"):
            with pytest.raises(TokenInvalidError) as exc_info:
                manager.raise_for(TokenValidation(valid=False, reason=reason))
            messages.add(exc_info.value.message)

        assert messages == {"Token inválido ou já utilizado"}

    def test_valid_does_not_raise(self) -> None:
        manager = PasswordResetTokenManager.__new__(PasswordResetTokenManager)
        manager.raise_for(TokenValidation(valid=True, user_id=1))


# ============================================================================
# Consume
# ============================================================================
class TestConsumePasswordReset:
    @pytest.mark.asyncio
    async def test_updates_password_and_marks_used(
        self, db_session: AsyncSession, customer_user: User
    ) -> None:
        manager = PasswordResetTokenManager(db_session)
        raw = await manager.issue(customer_user.id)

        user_id = await manager.consume(raw, hash_password("NovaSenha1!"))

        assert user_id == customer_user.id
        await db_session.refresh(customer_user)
        assert verify_password("NovaSenha1!", customer_user.password_hash)
        assert (await manager.validate(raw)).reason == "already_used"

    @pytest.mark.asyncio
    async def test_second_use_is_rejected(
        self, db_session: AsyncSession, customer_user: User
    ) -> None:
        manager = PasswordResetTokenManager(db_session)
        raw = await manager.issue(customer_user.id)
        await manager.consume(raw, hash_password("NovaSenha1!"))

        with pytest.raises(TokenInvalidError):
            await manager.consume(raw, hash_password("OutraSenha1!"))

        await db_session.refresh(customer_user)
        assert verify_password("NovaSenha1!", customer_user.password_hash)

    @pytest.mark.asyncio
    async def test_expired_token_leaves_password_unchanged(
        self, db_session: AsyncSession, customer_user: User
    ) -> None:
        manager = PasswordResetTokenManager(db_session)
        original_hash = customer_user.password_hash
        raw = await manager.issue(customer_user.id)
        await expire_token(db_session, PasswordResetToken, raw)

        with pytest.raises(TokenExpiredError):
            await manager.consume(raw, hash_password("NovaSenha1!"))

        await db_session.refresh(customer_user)
        assert customer_user.password_hash == original_hash
        token = await manager.token_repo.get_by_hash(hash_token(raw))
        assert token.used is False

    @pytest.mark.asyncio
    async def test_lost_race_is_rejected_without_change(
        self,
        db_session: AsyncSession,
        customer_user: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager = PasswordResetTokenManager(db_session)
        original_hash = customer_user.password_hash
        raw = await manager.issue(customer_user.id)

        async def claimed_elsewhere(token_id, now):
            return False

        monkeypatch.setattr(manager.token_repo, "mark_used", claimed_elsewhere)

        with pytest.raises(TokenInvalidError):
            await manager.consume(raw, hash_password("NovaSenha1!"))

        await db_session.refresh(customer_user)
        assert customer_user.password_hash == original_hash

    @pytest.mark.asyncio
    async def test_failed_user_update_rolls_back_claim(
        self,
        db_session: AsyncSession,
        customer_user: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        manager = PasswordResetTokenManager(db_session)
        raw = await manager.issue(customer_user.id)

        async def user_gone(user_id, password_hash):
            return False

        monkeypatch.setattr(manager.user_repo, "update_password_hash", user_gone)

        with pytest.raises(TokenInvalidError):
            await manager.consume(raw, hash_password("NovaSenha1!"))

        assert (await manager.validate(raw)).valid


class TestConsumeEmailVerification:
    @pytest.mark.asyncio
    async def test_marks_email_verified(
        self, db_session: AsyncSession, unverified_customer: User
    ) -> None:
        manager = EmailVerificationTokenManager(db_session)
        raw = await manager.issue(unverified_customer.id)

        assert await manager.consume(raw) == unverified_customer.id

        await db_session.refresh(unverified_customer)
        assert unverified_customer.email_verified is True

    @pytest.mark.asyncio
    async def test_expired_verification_message(
        self, db_session: AsyncSession, unverified_customer: User
    ) -> None:
        manager = EmailVerificationTokenManager(db_session)
        raw = await manager.issue(unverified_customer.id)
        await expire_token(db_session, EmailVerificationToken, raw)

        with pytest.raises(TokenExpiredError) as exc_info:
            await manager.consume(raw)

        assert "email de verificação" in exc_info.value.message
        await db_session.refresh(unverified_customer)
        assert unverified_customer.email_verified is False

    @pytest.mark.asyncio
    async def test_unknown_verification_token(self, db_session: AsyncSession) -> None:
        with pytest.raises(TokenInvalidError) as exc_info:
            await EmailVerificationTokenManager(db_session).consume("nope")

        assert exc_info.value.message == "Token de verificação inválido ou já utilizado"
