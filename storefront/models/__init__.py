"""
Database models for the ZK REZK storefront.

This module exports all SQLAlchemy models and the declarative base.
Import models from this module to ensure proper initialization.
"""

from storefront.models.audit_log import AuditLog
from storefront.models.base import Base
from storefront.models.enums import (
    AuditAction,
    SubscriberSegment,
    SubscriberStatus,
    UserRole,
)
from storefront.models.subscriber import Subscriber
from storefront.models.tokens import EmailVerificationToken, PasswordResetToken
from storefront.models.user import User

__all__ = [
    # Base
    "Base",
    # User models
    "User",
    "UserRole",
    # Token models
    "PasswordResetToken",
    "EmailVerificationToken",
    # Audit models
    "AuditLog",
    "AuditAction",
    # Newsletter
    "Subscriber",
    "SubscriberStatus",
    "SubscriberSegment",
]
