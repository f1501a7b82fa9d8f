"""
Service layer for business logic.

This package provides service classes that implement business logic,
coordinate between repositories, and handle transaction management.
"""

from storefront.services.account_service import AccountService
from storefront.services.admin_service import AdminService
from storefront.services.audit_service import AuditService
from storefront.services.auth_service import AuthService
from storefront.services.email_service import EmailService
from storefront.services.follow_up import FollowUpQueue
from storefront.services.subscriber_service import SubscriberService

__all__ = [
    "AccountService",
    "AdminService",
    "AuditService",
    "AuthService",
    "EmailService",
    "FollowUpQueue",
    "SubscriberService",
]
