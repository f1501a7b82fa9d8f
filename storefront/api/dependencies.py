"""
FastAPI dependencies for the request pipeline.

This module provides:
- Server session access
- Current principal resolution and admin / primary admin checks
- Rate limiting and CSRF verification guards
- Follow-up queue wiring (run after the response via BackgroundTasks)
- Service instances bound to the request database session

Guards are declared as route ``dependencies=[...]`` in pipeline order
(rate limit, then CSRF). FastAPI runs them before body validation errors
are reported, so cheap checks reject first.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core import csrf
from storefront.core.config import settings
from storefront.core.database import get_db
from storefront.core.rate_limit import client_key_from_request
from storefront.core.sessions import ServerSession
from storefront.exceptions import (
    CsrfRejectedError,
    InsufficientPermissionsError,
    NotAuthenticatedError,
    PrimaryAdminRequiredError,
    RateLimitExceededError,
)
from storefront.repositories.user_repository import UserRepository
from storefront.services.account_service import AccountService
from storefront.services.admin_service import AdminService, is_primary_admin
from storefront.services.audit_service import AuditService
from storefront.services.auth_service import (
    PRINCIPAL_SESSION_KEY,
    AuthService,
    Principal,
    deserialize_principal,
)
from storefront.services.email_service import EmailService
from storefront.services.follow_up import FollowUpQueue

logger = logging.getLogger(__name__)


DbSession = Annotated[AsyncSession, Depends(get_db)]


# ============================================================================
# Session and Principal
# ============================================================================


def get_server_session(request: Request) -> ServerSession:
    """Return the session loaded by ServerSessionMiddleware."""
    session = getattr(request.state, "session", None)
    if session is None:
        raise RuntimeError("ServerSessionMiddleware is not installed")
    return session


ServerSessionDep = Annotated[ServerSession, Depends(get_server_session)]


async def get_current_principal(session: ServerSessionDep, db: DbSession) -> Principal:
    """
    Dependency resolving the authenticated principal of the session.

    The stored principal is re-read from the database on every request.
    When the user no longer exists the principal is dropped from the
    session and the request is treated as anonymous.

    Raises:
        NotAuthenticatedError (401): No principal, or the user was deleted

    Usage:
        @router.get("/me")
        async def me(principal: CurrentPrincipal):
            return PrincipalResponse.model_validate(principal, from_attributes=True)
    """
    data = session.get(PRINCIPAL_SESSION_KEY)
    principal = await deserialize_principal(data, UserRepository(db))

    if principal is None:
        if data is not None:
            logger.info("Removing stale principal from session")
            session.pop(PRINCIPAL_SESSION_KEY, None)
        raise NotAuthenticatedError()

    return principal


async def require_admin(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """
    Dependency to ensure the principal is an admin.

    Raises:
        InsufficientPermissionsError (403): Principal is a customer
    """
    if not principal.is_admin:
        logger.warning(f"Access denied: user {principal.id} attempted admin-only action")
        raise InsufficientPermissionsError()
    return principal


async def require_primary_admin(
    principal: Annotated[Principal, Depends(require_admin)],
) -> Principal:
    """
    Dependency to ensure the principal is the primary admin.

    Raises:
        PrimaryAdminRequiredError (403): Any other admin
    """
    if not is_primary_admin(principal):
        logger.warning(f"Access denied: admin {principal.id} is not the primary admin")
        raise PrimaryAdminRequiredError()
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
AdminPrincipal = Annotated[Principal, Depends(require_admin)]
PrimaryAdminPrincipal = Annotated[Principal, Depends(require_primary_admin)]


# ============================================================================
# Pipeline Guards
# ============================================================================


def rate_limit(route_key: str) -> Callable[[Request], Awaitable[None]]:
    """
    Build a dependency enforcing the attempt budget of one route.

    The limiter is looked up on ``app.state.rate_limiters`` so every
    application instance counts independently.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limit(ROUTE_LOGIN)), Depends(verify_csrf)])
    """

    async def check_rate_limit(request: Request) -> None:
        limiter = request.app.state.rate_limiters.get(route_key)
        result = await limiter.check(client_key_from_request(request))
        if not result.allowed:
            raise RateLimitExceededError(result.retry_after)

    return check_rate_limit


async def verify_csrf(request: Request, session: ServerSessionDep) -> None:
    """
    Dependency rejecting state-changing requests without a valid CSRF token.

    Raises:
        CsrfRejectedError (403): Token missing from the session or the
            header, or the two differ
    """
    presented = request.headers.get(settings.csrf_header_name)
    if not csrf.verify(session, presented):
        logger.warning(
            f"CSRF rejected: {request.method} {request.url.path} "
            f"client={client_key_from_request(request)} header_present={presented is not None}"
        )
        raise CsrfRejectedError()


# ============================================================================
# Request Context
# ============================================================================


@dataclass(frozen=True)
class ClientInfo:
    ip_address: str | None
    user_agent: str | None


def get_client_info(request: Request) -> ClientInfo:
    """Client address (proxy aware) and user agent for audit entries."""
    ip_address = client_key_from_request(request)
    return ClientInfo(
        ip_address=None if ip_address == "unknown" else ip_address,
        user_agent=request.headers.get("User-Agent"),
    )


def get_base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_follow_ups(background_tasks: BackgroundTasks) -> FollowUpQueue:
    """
    Dependency providing the request's follow-up queue.

    The queue is scheduled to run once the response has been sent.
    """
    queue = FollowUpQueue()
    background_tasks.add_task(queue.run)
    return queue


Client = Annotated[ClientInfo, Depends(get_client_info)]
BaseUrl = Annotated[str, Depends(get_base_url)]
Emails = Annotated[EmailService, Depends(get_email_service)]
FollowUps = Annotated[FollowUpQueue, Depends(get_follow_ups)]


# ============================================================================
# Service Dependencies
# ============================================================================


def get_auth_service(db: DbSession) -> AuthService:
    return AuthService(db)


def get_audit_service(db: DbSession) -> AuditService:
    return AuditService(db)


def get_admin_service(db: DbSession) -> AdminService:
    return AdminService(db)


def get_account_service(db: DbSession) -> AccountService:
    return AccountService(db)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]
AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
