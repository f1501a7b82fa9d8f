"""
Token lifecycle management for password reset and email verification.

This module provides:
- Issuing single-use tokens (prior tokens of the user are deleted)
- Read-only validation with a precise failure reason
- Consumption that re-validates, claims the token and applies the user
  change in one transaction

Raw tokens are never stored or logged; only their SHA-256 digest is.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import ClassVar, Generic, Literal

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.security import generate_token, hash_token
from storefront.exceptions import TokenExpiredError, TokenInvalidError
from storefront.models.base import utcnow
from storefront.models.tokens import EmailVerificationToken, PasswordResetToken
from storefront.repositories.token_repository import OneTimeTokenRepository, TokenType
from storefront.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

FailureReason = Literal["not_found", "expired", "already_used"]


@dataclass(frozen=True)
class TokenValidation:
    valid: bool
    reason: FailureReason | None = None
    user_id: int | None = None


class TokenLifecycleManager(Generic[TokenType]):
    """
    Shared issue / validate / consume logic for one token table.

    Subclasses set the model, the lifetime and the user-facing messages.
    Unknown and already-used tokens share ``invalid_message`` so callers
    cannot probe which tokens once existed; expiry gets its own actionable
    message. The precise reason is always logged.
    """

    model: ClassVar[type]
    kind: ClassVar[str]
    invalid_message: ClassVar[str]
    expired_message: ClassVar[str]

    def __init__(self, session: AsyncSession):
        self.session = session
        self.token_repo: OneTimeTokenRepository[TokenType] = OneTimeTokenRepository(
            self.model, session
        )
        self.user_repo = UserRepository(session)

    @property
    def ttl(self) -> timedelta:
        raise NotImplementedError

    async def issue(self, user_id: int) -> str:
        """
        Issue a new token for a user.

        Deletes the user's previous tokens, stores the digest of a fresh
        256-bit token and commits.

        Returns:
            The raw token, to be delivered to the user only
        """
        raw_token = generate_token()
        now = utcnow()

        removed = await self.token_repo.delete_for_user(user_id)
        await self.token_repo.create(
            user_id=user_id,
            token_hash=hash_token(raw_token),
            expires_at=now + self.ttl,
        )
        await self.session.commit()

        logger.info(
            f"Issued {self.kind} token for user {user_id} "
            f"(superseded={removed}, expires_in={self.ttl})"
        )
        return raw_token

    async def validate(self, raw_token: str) -> TokenValidation:
        """
        Check a token without changing any state.

        Returns:
            TokenValidation with ``reason`` set when invalid
        """
        token = await self.token_repo.get_by_hash(hash_token(raw_token))
        return self._evaluate(token, utcnow())

    def _evaluate(self, token: TokenType | None, now: datetime) -> TokenValidation:
        if token is None:
            return TokenValidation(valid=False, reason="not_found")
        if token.used:
            return TokenValidation(valid=False, reason="already_used", user_id=token.user_id)
        if token.is_expired(now):
            return TokenValidation(valid=False, reason="expired", user_id=token.user_id)
        return TokenValidation(valid=True, user_id=token.user_id)

    def raise_for(self, validation: TokenValidation) -> None:
        """Translate a failed validation into the matching exception."""
        if validation.valid:
            return
        logger.warning(
            f"Rejected {self.kind} token: reason={validation.reason} user={validation.user_id}"
        )
        if validation.reason == "expired":
            raise TokenExpiredError(self.expired_message)
        raise TokenInvalidError(self.invalid_message)

    async def _consume(self, raw_token: str, apply: Callable[[int], Awaitable[bool]]) -> int:
        """
        Claim the token and apply the user change atomically.

        The validation is repeated here rather than trusting an earlier
        ``validate`` call. The claim is a conditional update, so when two
        requests race only one of them changes the row; the other is
        rejected as already used. Nothing is committed unless both the
        claim and the user change succeed.

        Returns:
            The id of the user the token belonged to
        """
        now = utcnow()
        token = await self.token_repo.get_by_hash(hash_token(raw_token))
        self.raise_for(self._evaluate(token, now))

        try:
            if not await self.token_repo.mark_used(token.id, now):
                logger.warning(f"Lost race consuming {self.kind} token {token.id}")
                raise TokenInvalidError(self.invalid_message)

            if not await apply(token.user_id):
                logger.warning(f"User {token.user_id} vanished while consuming {self.kind} token")
                raise TokenInvalidError(self.invalid_message)

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        return token.user_id


class PasswordResetTokenManager(TokenLifecycleManager[PasswordResetToken]):
    """Password reset tokens, valid for one hour by default."""

    model = PasswordResetToken
    kind = "password_reset"
    invalid_message = "Token inválido ou já utilizado"
    expired_message = "Token expirado. Por favor, solicite um novo link de recuperação."

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=settings.password_reset_token_ttl_minutes)

    async def consume(self, raw_token: str, new_password_hash: str) -> int:
        """
        Use a reset token to replace the owner's password hash.

        Returns:
            The id of the user whose password changed

        Raises:
            TokenInvalidError: Unknown, already used, or lost a concurrent race
            TokenExpiredError: Past its expiry
        """

        async def update_password(user_id: int) -> bool:
            return await self.user_repo.update_password_hash(user_id, new_password_hash)

        return await self._consume(raw_token, update_password)


class EmailVerificationTokenManager(TokenLifecycleManager[EmailVerificationToken]):
    """Email verification tokens, valid for 24 hours by default."""

    model = EmailVerificationToken
    kind = "email_verification"
    invalid_message = "Token de verificação inválido ou já utilizado"
    expired_message = (
        "Token de verificação expirado. Por favor, solicite um novo email de verificação."
    )

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=settings.email_verification_token_ttl_hours)

    async def consume(self, raw_token: str) -> int:
        """
        Use a verification token to confirm the owner's email address.

        Returns:
            The id of the verified user
        """
        return await self._consume(raw_token, self.user_repo.mark_email_verified)
