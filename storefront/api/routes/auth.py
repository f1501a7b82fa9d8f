"""
Authentication API routes.

This module provides REST endpoints for:
- CSRF token issuance
- Customer registration
- Login / logout and the current principal
- Password reset (request, token validation, completion)
- Email verification and resending the verification link

State-changing routes run the pipeline: rate limit, CSRF, body
validation, business rules, core operation, audit, follow-ups, response.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.api.dependencies import (
    AuditServiceDep,
    AuthServiceDep,
    BaseUrl,
    Client,
    CurrentPrincipal,
    Emails,
    FollowUps,
    ServerSessionDep,
    rate_limit,
    verify_csrf,
)
from storefront.core import csrf
from storefront.core.config import settings
from storefront.core.database import get_session_factory
from storefront.core.rate_limit import (
    ROUTE_FORGOT_PASSWORD,
    ROUTE_LOGIN,
    ROUTE_REGISTER,
    ROUTE_RESEND_VERIFICATION,
    ROUTE_RESET_PASSWORD,
)
from storefront.exceptions import EmailNotVerifiedError, InvalidCredentialsError, TokenError
from storefront.models.enums import AuditAction
from storefront.schemas.auth import (
    CsrfTokenResponse,
    ForgotPasswordRequest,
    LoginRequest,
    PrincipalResponse,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    ResetPasswordRequest,
    TokenValidationResponse,
)
from storefront.schemas.common import MessageResponse
from storefront.services.auth_service import destroy_session, establish_session
from storefront.services.subscriber_service import subscribe_lead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]

FORGOT_PASSWORD_MESSAGE = "Se o email existir em nossa base, você receberá um link de recuperação."
RESEND_VERIFICATION_MESSAGE = (
    "Se o email estiver cadastrado e ainda não confirmado, você receberá um novo link de verificação."
)


@router.get(
    "/csrf-token",
    response_model=CsrfTokenResponse,
    summary="Get the CSRF token of the session",
)
async def get_csrf_token(session: ServerSessionDep) -> CsrfTokenResponse:
    """
    Return the session's CSRF token, creating the session if needed.

    Clients send it back in the X-CSRF-Token header on every
    state-changing request.
    """
    return CsrfTokenResponse(csrf_token=csrf.ensure_session_token(session))


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new customer",
    description="""
    Register a customer account. The username is the email address.

    **Password Requirements:** at least 8 characters and at least three of:
    uppercase letter, lowercase letter, digit, special character.

    Terms of use and privacy policy must be accepted.

    **Rate Limit:** RATE_LIMIT_REGISTER (default: 3/hour)
    """,
    dependencies=[Depends(rate_limit(ROUTE_REGISTER)), Depends(verify_csrf)],
)
async def register(
    payload: RegisterRequest,
    auth_service: AuthServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
    base_url: BaseUrl,
    emails: Emails,
    follow_ups: FollowUps,
    session_factory: SessionFactory,
) -> RegisterResponse:
    """
    Register a customer.

    Raises:
        400: Weak password (``feedback``, ``strength``), duplicate email,
            or invalid body
    """
    user, verification_token = await auth_service.register(
        username=payload.username,
        password=payload.password,
        consent_marketing=payload.consent_marketing,
    )

    await audit_service.record(
        user.id,
        AuditAction.REGISTER,
        client.ip_address,
        client.user_agent,
        details={"username": user.username},
    )
    await audit_service.record(
        user.id,
        AuditAction.CONSENT_UPDATE,
        client.ip_address,
        client.user_agent,
        details={
            "source": "registration",
            "terms": True,
            "privacy": True,
            "marketing": payload.consent_marketing,
        },
    )

    if verification_token:
        follow_ups.add(
            "verification_email",
            emails.send_verification_email,
            user.username,
            verification_token,
            base_url,
        )
    follow_ups.add("lead_subscriber", subscribe_lead, session_factory, user.username)
    follow_ups.add(
        "new_customer_notification",
        emails.send_new_customer_notification,
        settings.primary_admin_email,
        user.username,
    )

    if verification_token:
        message = "Cadastro realizado! Verifique seu email para confirmar sua conta."
    else:
        message = "Cadastro realizado com sucesso! Você já pode fazer login."

    return RegisterResponse(
        id=user.id,
        username=user.username,
        role=user.role,
        email_verified=user.email_verified,
        message=message,
    )


@router.post(
    "/login",
    response_model=PrincipalResponse,
    summary="Login with email and password",
    description="""
    Authenticate and establish a session cookie.

    Unknown emails and wrong passwords get the same 401 response.
    Customers who have not confirmed their email get 403 with
    ``needsVerification: true``.

    **Rate Limit:** RATE_LIMIT_LOGIN (default: 5/15minute)
    """,
    dependencies=[Depends(rate_limit(ROUTE_LOGIN)), Depends(verify_csrf)],
)
async def login(
    credentials: LoginRequest,
    session: ServerSessionDep,
    auth_service: AuthServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
) -> PrincipalResponse:
    try:
        principal = await auth_service.login(credentials.username, credentials.password)
    except InvalidCredentialsError as e:
        await audit_service.log_login_failed(
            username=credentials.username,
            reason=e.reason,
            user_id=e.user_id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        raise
    except EmailNotVerifiedError as e:
        await audit_service.log_login_failed(
            username=credentials.username,
            reason="email_not_verified",
            user_id=e.user_id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        raise

    establish_session(session, principal)
    await audit_service.log_login(principal.id, client.ip_address, client.user_agent)

    return PrincipalResponse.model_validate(principal, from_attributes=True)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    dependencies=[Depends(verify_csrf)],
)
async def logout(
    principal: CurrentPrincipal,
    session: ServerSessionDep,
    audit_service: AuditServiceDep,
    client: Client,
) -> MessageResponse:
    """Destroy the session and clear the cookie."""
    destroy_session(session)
    await audit_service.log_logout(principal.id, client.ip_address, client.user_agent)

    logger.info(f"User logged out: {principal.id}")
    return MessageResponse(message="Logout realizado com sucesso")


@router.get(
    "/me",
    response_model=PrincipalResponse,
    summary="Get the authenticated principal",
)
async def me(principal: CurrentPrincipal) -> PrincipalResponse:
    return PrincipalResponse.model_validate(principal, from_attributes=True)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset link",
    description="""
    Always answers with the same message, whether or not the email exists.

    **Rate Limit:** RATE_LIMIT_FORGOT_PASSWORD (default: 3/hour)
    """,
    dependencies=[Depends(rate_limit(ROUTE_FORGOT_PASSWORD)), Depends(verify_csrf)],
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    auth_service: AuthServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
    base_url: BaseUrl,
    emails: Emails,
    follow_ups: FollowUps,
) -> MessageResponse:
    result = await auth_service.request_password_reset(payload.email)

    if result is not None:
        user, token = result
        await audit_service.record(
            user.id,
            AuditAction.PASSWORD_RESET_REQUEST,
            client.ip_address,
            client.user_agent,
        )
        follow_ups.add(
            "password_reset_email",
            emails.send_password_reset_email,
            user.username,
            token,
            base_url,
        )

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.get(
    "/validate-reset-token",
    response_model=TokenValidationResponse,
    summary="Check a password reset token",
    responses={400: {"model": TokenValidationResponse}},
)
async def validate_reset_token(
    auth_service: AuthServiceDep,
    token: str | None = None,
) -> TokenValidationResponse | JSONResponse:
    """
    Report whether a reset link can still be used. Nothing is changed.

    Expired tokens get their own message; unknown and used tokens share one.
    """
    try:
        await auth_service.validate_reset_token(token or "")
    except TokenError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"valid": False, "message": e.message},
        )

    return TokenValidationResponse(valid=True)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Set a new password with a reset token",
    description="""
    The new password is checked against the policy before the token is
    looked at, so a weak password does not use up the link.

    **Rate Limit:** RATE_LIMIT_RESET_PASSWORD (default: 5/15minute)
    """,
    dependencies=[Depends(rate_limit(ROUTE_RESET_PASSWORD)), Depends(verify_csrf)],
)
async def reset_password(
    payload: ResetPasswordRequest,
    auth_service: AuthServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
) -> MessageResponse:
    """
    Complete a password reset.

    Raises:
        400: Weak password, expired token, or invalid / used token
    """
    user_id = await auth_service.reset_password(payload.token, payload.password)

    await audit_service.record(
        user_id,
        AuditAction.PASSWORD_RESET_COMPLETE,
        client.ip_address,
        client.user_agent,
    )

    return MessageResponse(message="Senha alterada com sucesso! Você já pode fazer login.")


@router.get(
    "/verify-email",
    response_model=MessageResponse,
    summary="Confirm an email address",
)
async def verify_email(
    auth_service: AuthServiceDep,
    audit_service: AuditServiceDep,
    client: Client,
    token: str = "",
) -> MessageResponse:
    """
    Consume the verification token from the emailed link.

    Raises:
        400: Expired, unknown or already used token
    """
    user_id = await auth_service.verify_email(token)

    await audit_service.record(
        user_id,
        AuditAction.EMAIL_VERIFIED,
        client.ip_address,
        client.user_agent,
    )

    return MessageResponse(message="Email verificado com sucesso! Você já pode fazer login.")


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    summary="Send a new verification link",
    description="""
    Always answers with the same message, whether or not the email exists
    or is already verified.

    **Rate Limit:** RATE_LIMIT_RESEND_VERIFICATION (default: 3/hour)
    """,
    dependencies=[Depends(rate_limit(ROUTE_RESEND_VERIFICATION)), Depends(verify_csrf)],
)
async def resend_verification(
    payload: ResendVerificationRequest,
    auth_service: AuthServiceDep,
    base_url: BaseUrl,
    emails: Emails,
    follow_ups: FollowUps,
) -> MessageResponse:
    result = await auth_service.resend_verification(payload.email)

    if result is not None:
        user, token = result
        follow_ups.add(
            "verification_email",
            emails.send_verification_email,
            user.username,
            token,
            base_url,
        )

    return MessageResponse(message=RESEND_VERIFICATION_MESSAGE)
