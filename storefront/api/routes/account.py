"""
Account API routes (LGPD self-service).

This module provides REST endpoints for:
- Consent history of the authenticated user
- Updating marketing consent
- Exporting the user's personal data
"""

import logging

from fastapi import APIRouter, Depends

from storefront.api.dependencies import (
    AccountServiceDep,
    AuditServiceDep,
    Client,
    CurrentPrincipal,
    verify_csrf,
)
from storefront.models.base import utcnow
from storefront.models.enums import AuditAction
from storefront.schemas.account import (
    AccountProfileResponse,
    AuditEntryResponse,
    ConsentHistoryResponse,
    ConsentStatusResponse,
    ConsentUpdateRequest,
    DataExportResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account", tags=["Account"])


@router.get(
    "/consent-history",
    response_model=ConsentHistoryResponse,
    summary="Get consent history",
)
async def get_consent_history(
    principal: CurrentPrincipal,
    account_service: AccountServiceDep,
) -> ConsentHistoryResponse:
    """Current consent state plus every recorded consent change, newest first."""
    user = await account_service.get_user(principal.id)
    history = await account_service.consent_history(principal.id)

    return ConsentHistoryResponse(
        current=ConsentStatusResponse.model_validate(user),
        history=[AuditEntryResponse.model_validate(entry) for entry in history],
    )


@router.patch(
    "/consent",
    response_model=ConsentStatusResponse,
    summary="Update marketing consent",
    dependencies=[Depends(verify_csrf)],
)
async def update_consent(
    payload: ConsentUpdateRequest,
    principal: CurrentPrincipal,
    account_service: AccountServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
) -> ConsentStatusResponse:
    """Set the marketing opt-in. Changes are recorded in the consent history."""
    user, previous = await account_service.update_marketing_consent(
        principal.id, payload.marketing_opt_in
    )

    if previous != payload.marketing_opt_in:
        await audit_service.record(
            principal.id,
            AuditAction.CONSENT_UPDATE,
            client.ip_address,
            client.user_agent,
            details={
                "source": "account",
                "marketing": payload.marketing_opt_in,
                "previous": previous,
            },
        )

    return ConsentStatusResponse.model_validate(user)


@router.get(
    "/export",
    response_model=DataExportResponse,
    summary="Export personal data",
)
async def export_data(
    principal: CurrentPrincipal,
    account_service: AccountServiceDep,
) -> DataExportResponse:
    """Profile and full audit trail of the authenticated user. No password hash."""
    data = await account_service.export_data(principal.id)
    logger.info(f"Personal data exported for user {principal.id}")

    return DataExportResponse(
        exported_at=utcnow(),
        profile=AccountProfileResponse.model_validate(data["user"]),
        audit_logs=[AuditEntryResponse.model_validate(entry) for entry in data["audit_logs"]],
    )
