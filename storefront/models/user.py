"""
User model.

A user is either a customer (self-registered, logs in with their email
address as username) or an admin (created by the primary admin).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.models.base import Base, UTCDateTime, utcnow
from storefront.models.enums import UserRole


class User(Base):
    """
    User model for authentication and consent tracking.

    Attributes:
        id: Integer primary key
        username: Unique login identifier, the lower-cased email address
        password_hash: Argon2id hashed password
        role: admin or customer, immutable after creation
        email_verified: Whether the email confirmation link was followed
        terms_accepted_at: When the terms of use were accepted
        privacy_accepted_at: When the privacy policy was accepted
        marketing_opt_in: Current marketing email consent
        created_at: When the account was created

    Security:
        - password_hash stores Argon2id hash (never store plain passwords)
        - username uniqueness is enforced by a unique constraint
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="user_role",
            native_enum=False,
            length=20,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=UserRole.CUSTOMER,
        index=True,
    )

    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Consent (LGPD)
    terms_accepted_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
    )

    privacy_accepted_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
    )

    marketing_opt_in: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username}, role={self.role.value})"
