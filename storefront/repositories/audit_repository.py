"""
AuditLog repository for audit trail operations.

This module provides database operations for the AuditLog model.
Note: AuditLogs are IMMUTABLE - this repository only supports
creation and reading, not updates or deletes.
"""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.audit_log import AuditLog
from storefront.models.enums import AuditAction


class AuditLogRepository:
    """
    Repository for AuditLog model operations.

    IMPORTANT: This repository does NOT extend BaseRepository because
    audit logs are immutable. Only add() and read operations are supported.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, instance: AuditLog) -> AuditLog:
        """
        Persist a new audit log entry.

        This is the ONLY way to add audit logs. They cannot be modified after creation.
        """
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def list_for_user(
        self,
        user_id: int,
        actions: Sequence[AuditAction] | None = None,
        limit: int = 500,
    ) -> list[AuditLog]:
        """
        Get audit logs of a user, newest first.

        Used for the consent history and the personal data export.

        Args:
            user_id: Owner of the entries
            actions: Restrict to these action types
            limit: Maximum number of records to return
        """
        query = select(AuditLog).where(AuditLog.user_id == user_id)
        if actions:
            query = query.where(AuditLog.action.in_(list(actions)))
        query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())
