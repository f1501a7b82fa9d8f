"""
Enums shared by the storefront models.

- UserRole: the two account kinds (admin, customer)
- AuditAction: security events written to the audit trail
- SubscriberStatus / SubscriberSegment: newsletter list membership
"""

import enum


class UserRole(str, enum.Enum):
    """
    Account role.

    Customers register themselves; admins are created by the primary admin.
    A role never changes after the account is created.
    """

    ADMIN = "admin"
    CUSTOMER = "customer"


class AuditAction(str, enum.Enum):
    """
    Enumeration of audit log action types.

    These actions are recorded for compliance and security monitoring.
    """

    # Authentication
    REGISTER = "register"
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"

    # Password reset
    PASSWORD_RESET_REQUEST = "password_reset_request"
    PASSWORD_RESET_COMPLETE = "password_reset_complete"

    # Consent (LGPD)
    CONSENT_UPDATE = "consent_update"

    # Email verification
    EMAIL_VERIFIED = "email_verified"

    # Administrative
    ADMIN_CREATE = "admin_create"
    ADMIN_DELETE = "admin_delete"


class SubscriberStatus(str, enum.Enum):
    ACTIVE = "active"
    UNSUBSCRIBED = "unsubscribed"


class SubscriberSegment(str, enum.Enum):
    """Lead: registered without purchases yet. Customer: has purchased."""

    LEAD = "lead"
    CUSTOMER = "customer"
