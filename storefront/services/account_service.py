"""
Account self-service for customers (LGPD).

This module provides:
- Consent history, read from the audit trail
- Marketing consent updates
- Personal data export (profile plus audit trail)
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import NotFoundError
from storefront.models.audit_log import AuditLog
from storefront.models.enums import AuditAction
from storefront.models.user import User
from storefront.repositories.audit_repository import AuditLogRepository
from storefront.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.audit_repo = AuditLogRepository(session)

    async def get_user(self, user_id: int) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user

    async def consent_history(self, user_id: int) -> list[AuditLog]:
        """Consent changes of the user, newest first."""
        return await self.audit_repo.list_for_user(user_id, actions=[AuditAction.CONSENT_UPDATE])

    async def update_marketing_consent(self, user_id: int, opt_in: bool) -> tuple[User, bool]:
        """
        Set the marketing opt-in.

        Returns:
            Tuple of (User, previous value)
        """
        user = await self.get_user(user_id)
        previous = user.marketing_opt_in
        if previous != opt_in:
            user = await self.user_repo.update_marketing_opt_in(user, opt_in)
            await self.session.commit()
            logger.info(f"Marketing consent of user {user_id} changed to {opt_in}")
        return user, previous

    async def export_data(self, user_id: int) -> dict[str, Any]:
        """
        Collect everything stored about the user.

        The password hash is never part of the export.
        """
        user = await self.get_user(user_id)
        logs = await self.audit_repo.list_for_user(user_id)
        return {"user": user, "audit_logs": logs}
