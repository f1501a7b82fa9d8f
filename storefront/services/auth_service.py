"""
Authentication service for registration, login and account recovery.

This module provides:
- Customer registration with password policy and consent capture
- Credential verification with enumeration-resistant failures
- Session principal handling (establish, resolve, destroy)
- Password reset request and completion
- Email verification and resending of the verification link
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.security import (
    DUMMY_PASSWORD_HASH,
    ensure_password_acceptable,
    hash_password_async,
    verify_password_async,
)
from storefront.core.sessions import ServerSession
from storefront.exceptions import (
    DuplicateUsernameError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
)
from storefront.models.base import utcnow
from storefront.models.enums import UserRole
from storefront.models.user import User
from storefront.repositories.user_repository import UserRepository
from storefront.services.token_service import (
    EmailVerificationTokenManager,
    PasswordResetTokenManager,
)

logger = logging.getLogger(__name__)

PRINCIPAL_SESSION_KEY = "principal"


# =============================================================================
# Session Principal
# =============================================================================


@dataclass(frozen=True)
class Principal:
    """The minimal identity carried by an authenticated session."""

    id: int
    username: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, username=user.username, role=user.role)


def serialize_principal(principal: Principal) -> dict[str, Any]:
    return {"id": principal.id, "username": principal.username, "role": principal.role.value}


async def deserialize_principal(
    data: dict[str, Any] | None,
    user_repo: UserRepository,
) -> Principal | None:
    """
    Resolve a stored principal against the current user record.

    Returns None when the data is malformed or the user was deleted since
    the session was established. Username and role come from the database,
    not from the session copy.
    """
    if not data or not isinstance(data.get("id"), int):
        return None

    user = await user_repo.get_by_id(data["id"])
    if user is None:
        logger.info(f"Session principal {data['id']} no longer exists")
        return None
    return Principal.from_user(user)


def establish_session(session: ServerSession, principal: Principal) -> None:
    """
    Mark the session authenticated.

    The session id is regenerated on save so an id planted before login
    cannot be reused afterwards. Other session data (the CSRF token) is kept.
    """
    session.regenerate()
    session[PRINCIPAL_SESSION_KEY] = serialize_principal(principal)


def destroy_session(session: ServerSession) -> None:
    """Drop all session state; the cookie is cleared on the response."""
    session.invalidate()


# =============================================================================
# Authentication Service
# =============================================================================


class AuthService:
    """
    Service class for authentication operations.

    All methods require an active database session. Each state change is
    committed here; callers only record audit entries and queue follow-ups.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.reset_tokens = PasswordResetTokenManager(session)
        self.verification_tokens = EmailVerificationTokenManager(session)

    async def register(
        self,
        username: str,
        password: str,
        consent_marketing: bool = False,
    ) -> tuple[User, str | None]:
        """
        Register a new customer.

        Order: password policy, username uniqueness, hashing, creation.
        Terms and privacy acceptance is stamped with the creation time.

        Args:
            username: Email address used as username
            password: Plain text password
            consent_marketing: Marketing opt-in given at sign-up

        Returns:
            Tuple of (User, raw verification token or None when email
            verification is disabled)

        Raises:
            WeakPasswordError: Password fails the policy
            DuplicateUsernameError: Username already taken
        """
        ensure_password_acceptable(password)

        if await self.user_repo.get_by_username(username) is not None:
            logger.warning(f"Registration attempted with existing username: {username}")
            raise DuplicateUsernameError()

        password_hash = await hash_password_async(password)
        now = utcnow()

        user = await self.user_repo.create(
            username=username,
            password_hash=password_hash,
            role=UserRole.CUSTOMER,
            email_verified=not settings.email_verification_required,
            terms_accepted_at=now,
            privacy_accepted_at=now,
            marketing_opt_in=consent_marketing,
        )
        await self.session.commit()

        logger.info(f"Customer registered: {user.id} ({user.username})")

        verification_token = None
        if settings.email_verification_required:
            verification_token = await self.verification_tokens.issue(user.id)

        return user, verification_token

    async def authenticate(self, username: str, password: str) -> User:
        """
        Verify credentials.

        Returns:
            The matching User

        Raises:
            InvalidCredentialsError: Same message for unknown username and
                wrong password; ``reason`` and ``user_id`` feed the audit log
        """
        user = await self.user_repo.get_by_username(username)
        if user is None:
            await verify_password_async(password, DUMMY_PASSWORD_HASH)
            logger.warning(f"Login failed: user not found ({username})")
            raise InvalidCredentialsError(reason="user_not_found")

        if not await verify_password_async(password, user.password_hash):
            logger.warning(f"Login failed: invalid password for user {user.id}")
            raise InvalidCredentialsError(reason="wrong_password", user_id=user.id)

        return user

    async def login(self, username: str, password: str) -> Principal:
        """
        Authenticate and apply the email verification policy.

        Customers must have confirmed their email when verification is
        required; admins are exempt.

        Raises:
            InvalidCredentialsError: Bad username or password
            EmailNotVerifiedError: Correct credentials, unconfirmed email
        """
        user = await self.authenticate(username, password)

        if (
            settings.email_verification_required
            and user.role == UserRole.CUSTOMER
            and not user.email_verified
        ):
            logger.info(f"Login blocked until email is verified: user {user.id}")
            raise EmailNotVerifiedError(user.username, user_id=user.id)

        logger.info(f"User logged in: {user.id} ({user.username})")
        return Principal.from_user(user)

    async def request_password_reset(self, email: str) -> tuple[User, str] | None:
        """
        Issue a password reset token if the account exists.

        The caller answers with the same generic message either way.

        Returns:
            Tuple of (User, raw token), or None for an unknown email
        """
        user = await self.user_repo.get_by_username(email)
        if user is None:
            logger.info(f"Password reset requested for non-existent email: {email}")
            return None

        token = await self.reset_tokens.issue(user.id)
        return user, token

    async def validate_reset_token(self, token: str) -> int:
        """
        Check a reset token without using it.

        Returns:
            The id of the user the token belongs to

        Raises:
            TokenInvalidError: Unknown or already used
            TokenExpiredError: Past its expiry
        """
        validation = await self.reset_tokens.validate(token)
        self.reset_tokens.raise_for(validation)
        return validation.user_id

    async def reset_password(self, token: str, new_password: str) -> int:
        """
        Complete a password reset.

        The policy check runs first so a weak password never costs the
        user their token. The token is then checked before the expensive
        hash, and checked again inside the atomic consume.

        Returns:
            The id of the user whose password changed

        Raises:
            WeakPasswordError, TokenInvalidError, TokenExpiredError
        """
        ensure_password_acceptable(new_password)

        self.reset_tokens.raise_for(await self.reset_tokens.validate(token))

        password_hash = await hash_password_async(new_password)
        user_id = await self.reset_tokens.consume(token, password_hash)

        logger.info(f"Password reset completed for user {user_id}")
        return user_id

    async def verify_email(self, token: str) -> int:
        """
        Confirm an email address with a verification token.

        Returns:
            The id of the verified user
        """
        user_id = await self.verification_tokens.consume(token)
        logger.info(f"Email verified for user {user_id}")
        return user_id

    async def resend_verification(self, email: str) -> tuple[User, str] | None:
        """
        Reissue the verification token of an unverified account.

        Returns:
            Tuple of (User, raw token), or None when the account does not
            exist or is already verified
        """
        user = await self.user_repo.get_by_username(email)
        if user is None or user.email_verified:
            logger.info(f"Verification resend skipped for {email}")
            return None

        token = await self.verification_tokens.issue(user.id)
        return user, token
