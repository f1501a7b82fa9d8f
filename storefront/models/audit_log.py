"""
AuditLog model for the security audit trail.

Audit logs are WRITE-ONCE - they cannot be modified or deleted after creation.
They back the consent history and data export reports of the account area.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Enum, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from storefront.models.base import Base, UTCDateTime, utcnow
from storefront.models.enums import AuditAction


class AuditLog(Base):
    """
    AuditLog model for tracking security-relevant events.

    Attributes:
        id: Integer primary key
        user_id: User the event concerns (NULL for e.g. a failed login
            against an unknown username; set to NULL if the user is deleted)
        action: Type of event (enum)
        ip_address: Client IP address
        user_agent: Client user agent string
        details: Structured event context (reason, consents, target ids)
        created_at: When the event occurred

    Example:
        audit_log = AuditLog(
            user_id=user.id,
            action=AuditAction.LOGIN_FAILED,
            ip_address="203.0.113.7",
            details={"reason": "wrong_password", "username": user.username},
        )
    """

    __tablename__ = "audit_logs"

    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action: Mapped[AuditAction] = mapped_column(
        Enum(
            AuditAction,
            name="audit_action",
            native_enum=False,
            length=40,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        index=True,
    )

    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),  # IPv6 max length
        nullable=True,
    )

    user_agent: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    details: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        index=True,
    )

    def __repr__(self) -> str:
        return f"AuditLog(id={self.id}, action={self.action.value}, user_id={self.user_id})"
