"""
Admin management API routes.

This module provides HTTP endpoints for admin operations:
- GET /api/admin/users - List admin accounts (any admin)
- POST /api/admin/users - Create admin account (primary admin)
- DELETE /api/admin/users/{user_id} - Delete admin account (primary admin)

The primary admin is configured with PRIMARY_ADMIN_EMAIL and can never be
deleted.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from storefront.api.dependencies import (
    AdminPrincipal,
    AdminServiceDep,
    AuditServiceDep,
    Client,
    PrimaryAdminPrincipal,
    verify_csrf,
)
from storefront.models.enums import AuditAction
from storefront.schemas.admin import AdminUserResponse, CreateAdminRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/users",
    response_model=list[AdminUserResponse],
    summary="List admin users",
)
async def list_admin_users(
    current_admin: AdminPrincipal,
    admin_service: AdminServiceDep,
) -> list[AdminUserResponse]:
    """List every admin account, oldest first. Requires an admin session."""
    admins = await admin_service.list_admins()
    return [AdminUserResponse.model_validate(admin) for admin in admins]


@router.post(
    "/users",
    response_model=AdminUserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create admin user",
    description="Create a new admin account. Only the primary admin may do this. "
                "The password must satisfy the password policy.",
    dependencies=[Depends(verify_csrf)],
)
async def create_admin_user(
    request_data: CreateAdminRequest,
    current_admin: PrimaryAdminPrincipal,
    admin_service: AdminServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
) -> AdminUserResponse:
    """
    Create an admin account.

    Raises:
        400: Weak password or email already in use
        403: Caller is not the primary admin
    """
    admin = await admin_service.create_admin(request_data.username, request_data.password)

    await audit_service.record(
        current_admin.id,
        AuditAction.ADMIN_CREATE,
        client.ip_address,
        client.user_agent,
        details={"target_id": admin.id, "target_username": admin.username},
    )

    return AdminUserResponse.model_validate(admin)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete admin user",
    description="Permanently delete an admin account. Only the primary admin may do this, "
                "and the primary admin itself cannot be deleted.",
    dependencies=[Depends(verify_csrf)],
)
async def delete_admin_user(
    user_id: int,
    current_admin: PrimaryAdminPrincipal,
    admin_service: AdminServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
) -> Response:
    """
    Delete an admin account.

    Raises:
        403: Caller is not the primary admin, or target is the primary admin
        404: No admin with that id
    """
    deleted = await admin_service.delete_admin(user_id)

    await audit_service.record(
        current_admin.id,
        AuditAction.ADMIN_DELETE,
        client.ip_address,
        client.user_agent,
        details={"target_id": deleted.id, "target_username": deleted.username},
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)
