"""
Security utilities for authentication.

This module provides:
- Password hashing with Argon2id (run off the event loop)
- Password policy enforcement for flows that store a password
- One-time token generation and SHA-256 hashing for storage
- Signing and verification of the session cookie value
"""

import hashlib
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import (
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)
from jose import JWTError, jwt
from starlette.concurrency import run_in_threadpool

from storefront.core import password_policy
from storefront.core.config import settings
from storefront.exceptions import WeakPasswordError

logger = logging.getLogger(__name__)


# =============================================================================
# Password Hashing with Argon2id
# =============================================================================
# Memory-hard and resistant to GPU attacks. Hashing is CPU-bound, so the
# async helpers below run it in the threadpool instead of the event loop.
# =============================================================================

pwd_hasher = PasswordHasher(
    time_cost=settings.argon2_time_cost,
    memory_cost=settings.argon2_memory_cost,
    parallelism=settings.argon2_parallelism,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id.

    Args:
        password: Plain text password to hash

    Returns:
        Argon2id hash string (includes algorithm, parameters, salt, and hash)
    """
    return pwd_hasher.hash(password)


# Unknown usernames are verified against this hash; every failed login
# performs one argon2 verification.
DUMMY_PASSWORD_HASH = hash_password("zk-rezk-unknown-user")


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Verify a password against an Argon2id hash.

    Args:
        password: Plain text password to verify
        hashed_password: Argon2id hash to verify against

    Returns:
        True if password matches hash, False otherwise
    """
    try:
        pwd_hasher.verify(hashed_password, password)
        return True
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


async def hash_password_async(password: str) -> str:
    """Hash a password in a worker thread."""
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, hashed_password: str) -> bool:
    """Verify a password in a worker thread."""
    return await run_in_threadpool(verify_password, password, hashed_password)


def ensure_password_acceptable(password: str) -> None:
    """
    Reject passwords that fail the password policy.

    Raises:
        WeakPasswordError: With the itemized missing rules and strength label
    """
    evaluation = password_policy.evaluate(password)
    if not evaluation.is_acceptable:
        raise WeakPasswordError(
            feedback=evaluation.missing_rule_messages,
            strength=evaluation.strength_label,
        )


# =============================================================================
# One-time Tokens (password reset, email verification)
# =============================================================================
# The raw token travels only inside the emailed link. The database stores
# its SHA-256 digest, so a leaked table cannot be replayed.
# =============================================================================


def generate_token() -> str:
    """Generate a 256-bit random token, hex encoded."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash a one-time token with SHA-256 for storage and lookup.

    Args:
        token: Raw token as sent to the user

    Returns:
        Hex digest (64 characters)
    """
    return hashlib.sha256(token.encode()).hexdigest()


# =============================================================================
# Session Cookie Signing
# =============================================================================

ALGORITHM = "HS256"


def sign_session_id(session_id: str, max_age_seconds: int) -> str:
    """
    Wrap a session id in a signed, expiring JWT for the session cookie.

    Args:
        session_id: Opaque server-side session id
        max_age_seconds: Lifetime of the cookie

    Returns:
        Encoded JWT string
    """
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sid": session_id,
        "iat": now,
        "exp": now + timedelta(seconds=max_age_seconds),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def unsign_session_id(value: str) -> str | None:
    """
    Extract the session id from a signed cookie value.

    Returns:
        The session id, or None when the signature is invalid or expired
    """
    try:
        payload = jwt.decode(value, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected session cookie: {e}")
        return None

    session_id = payload.get("sid")
    if not isinstance(session_id, str):
        return None
    return session_id
