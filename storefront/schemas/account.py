"""
Account Pydantic schemas (consent management and data export).
"""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from storefront.models.enums import AuditAction, UserRole
from storefront.schemas.common import CamelModel


class ConsentUpdateRequest(CamelModel):
    marketing_opt_in: bool = Field(description="Receive marketing emails")


class ConsentStatusResponse(CamelModel):
    """Current consent state of the account."""

    model_config = ConfigDict(from_attributes=True)

    terms_accepted_at: datetime | None
    privacy_accepted_at: datetime | None
    marketing_opt_in: bool


class AuditEntryResponse(CamelModel):
    """
    Schema for an audit trail entry shown to its owner.

    Attributes:
        id: Entry id
        action: Event type
        ip_address: Client IP at the time
        user_agent: Client user agent at the time
        details: Event context
        created_at: When the event occurred
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    action: AuditAction
    ip_address: str | None
    user_agent: str | None
    details: dict[str, Any] | None
    created_at: datetime


class ConsentHistoryResponse(CamelModel):
    current: ConsentStatusResponse
    history: list[AuditEntryResponse]


class AccountProfileResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: UserRole
    email_verified: bool
    terms_accepted_at: datetime | None
    privacy_accepted_at: datetime | None
    marketing_opt_in: bool
    created_at: datetime


class DataExportResponse(CamelModel):
    """Everything stored about the account, minus the password hash."""

    exported_at: datetime
    profile: AccountProfileResponse
    audit_logs: list[AuditEntryResponse]
