"""
One-time token models.

- PasswordResetToken: authorizes a single password change (1 hour)
- EmailVerificationToken: confirms ownership of the email address (24 hours)

Only the SHA-256 digest of a token is stored. The raw value exists solely in
the link emailed to the user.
"""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from storefront.models.base import Base, UTCDateTime, utcnow


class OneTimeTokenMixin:
    """
    Columns shared by single-use tokens.

    A token is valid iff ``used`` is False and the current time is before
    ``expires_at``. Tokens are never reused; a new request for the same user
    deletes the previous ones.
    """

    @declared_attr
    def user_id(cls) -> Mapped[int]:
        return mapped_column(
            Integer,
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )

    expires_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )

    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class PasswordResetToken(OneTimeTokenMixin, Base):
    __tablename__ = "password_reset_tokens"


class EmailVerificationToken(OneTimeTokenMixin, Base):
    __tablename__ = "email_verification_tokens"
