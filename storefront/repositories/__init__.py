"""
Repositories for database access.

Repositories flush but never commit; services own transaction boundaries.
"""

from storefront.repositories.audit_repository import AuditLogRepository
from storefront.repositories.base import BaseRepository
from storefront.repositories.subscriber_repository import SubscriberRepository
from storefront.repositories.token_repository import OneTimeTokenRepository
from storefront.repositories.user_repository import UserRepository, normalize_username

__all__ = [
    "BaseRepository",
    "UserRepository",
    "normalize_username",
    "OneTimeTokenRepository",
    "AuditLogRepository",
    "SubscriberRepository",
]
