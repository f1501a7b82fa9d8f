"""
Audit service for the security audit trail.

This module provides:
- Best-effort recording of security events (never raises to the caller)
- Convenience wrappers for the common authentication events
- Retrieval of a user's entries for consent history and data export
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.models.audit_log import AuditLog
from storefront.models.enums import AuditAction
from storefront.repositories.audit_repository import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    """
    Service class for audit logging operations.

    Recording is best-effort: the primary operation has already committed
    when an entry is written, and a failure here is logged and swallowed so
    it can never fail the user-facing request.

    All audit logs are immutable - they cannot be modified or deleted after creation.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit_repo = AuditLogRepository(session)

    async def record(
        self,
        user_id: int | None,
        action: AuditAction,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        """
        Record a security event.

        Args:
            user_id: User concerned (None when unknown, e.g. failed login
                against a nonexistent username)
            action: Type of event
            ip_address: Client IP address
            user_agent: Client user agent
            details: Structured context, stored as JSON

        Returns:
            The created AuditLog, or None if auditing is disabled or failed

        Example:
            await audit_service.record(
                user_id=user.id,
                action=AuditAction.LOGIN,
                ip_address="203.0.113.7",
                user_agent="Mozilla/5.0...",
            )
        """
        if not settings.audit_log_enabled:
            return None

        try:
            audit_log = await self.audit_repo.add(
                AuditLog(
                    user_id=user_id,
                    action=action,
                    ip_address=ip_address,
                    user_agent=user_agent[:500] if user_agent else None,
                    details=details,
                )
            )
            await self.session.commit()
        except Exception:
            logger.error(
                f"Failed to write audit log: action={action.value} user={user_id}",
                exc_info=True,
            )
            try:
                await self.session.rollback()
            except Exception:
                logger.error("Rollback after audit failure also failed", exc_info=True)
            return None

        logger.debug(f"Audit log created: user={user_id}, action={action.value}")
        return audit_log

    async def log_login(
        self,
        user_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog | None:
        return await self.record(user_id, AuditAction.LOGIN, ip_address, user_agent)

    async def log_login_failed(
        self,
        username: str,
        reason: str,
        user_id: int | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog | None:
        """
        Log a failed login attempt.

        The reason (``user_not_found`` or ``wrong_password``) is kept here
        only; the client always receives the same generic message.
        """
        return await self.record(
            user_id,
            AuditAction.LOGIN_FAILED,
            ip_address,
            user_agent,
            details={"username": username, "reason": reason},
        )

    async def log_logout(
        self,
        user_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog | None:
        return await self.record(user_id, AuditAction.LOGOUT, ip_address, user_agent)

    async def get_user_logs(
        self,
        user_id: int,
        actions: list[AuditAction] | None = None,
    ) -> list[AuditLog]:
        """Get a user's audit entries, newest first."""
        return await self.audit_repo.list_for_user(user_id, actions=actions)
