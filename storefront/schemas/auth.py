"""
Authentication Pydantic schemas for API request/response handling.

This module provides:
- Registration, login and account-recovery request schemas
- Principal, registration and CSRF token response schemas

Password strength is not checked here. The password policy runs in the
service layer so rejections carry itemized ``feedback`` and ``strength``.
"""

from pydantic import AliasChoices, EmailStr, Field, field_validator

from storefront.models.enums import UserRole
from storefront.schemas.common import CamelModel


class RegisterRequest(CamelModel):
    """
    Schema for customer registration.

    Attributes:
        username: Email address used as username (``email`` is accepted too)
        password: Plain text password
        consent_terms: Terms of use accepted (must be true)
        consent_privacy: Privacy policy accepted (must be true)
        consent_marketing: Optional marketing opt-in
    """

    username: EmailStr = Field(
        validation_alias=AliasChoices("username", "email"),
        description="Email address, used as username",
    )
    password: str = Field(min_length=1, max_length=128, description="Password")
    consent_terms: bool = Field(description="Terms of use accepted")
    consent_privacy: bool = Field(description="Privacy policy accepted")
    consent_marketing: bool = Field(default=False, description="Marketing emails opt-in")

    @field_validator("consent_terms")
    @classmethod
    def validate_terms(cls, value: bool) -> bool:
        if not value:
            raise ValueError("Você precisa aceitar os Termos de Uso")
        return value

    @field_validator("consent_privacy")
    @classmethod
    def validate_privacy(cls, value: bool) -> bool:
        if not value:
            raise ValueError("Você precisa aceitar a Política de Privacidade")
        return value


class LoginRequest(CamelModel):
    """
    Schema for login.

    Attributes:
        username: Account username (email address)
        password: Account password
    """

    username: str = Field(min_length=1, max_length=255, description="Username (email)")
    password: str = Field(min_length=1, max_length=128, description="Password")


class ForgotPasswordRequest(CamelModel):
    email: EmailStr = Field(description="Account email address")


class ResendVerificationRequest(CamelModel):
    email: EmailStr = Field(description="Account email address")


class ResetPasswordRequest(CamelModel):
    """
    Schema for completing a password reset.

    Attributes:
        token: Raw token from the reset link
        password: New password
    """

    token: str = Field(min_length=1, max_length=256, description="Reset token")
    password: str = Field(min_length=1, max_length=128, description="New password")


class PrincipalResponse(CamelModel):
    """
    Schema for the authenticated principal.

    Returned by login and ``/auth/me``.
    """

    id: int
    username: str
    role: UserRole


class RegisterResponse(PrincipalResponse):
    email_verified: bool = Field(description="Whether the email is already confirmed")
    message: str = Field(description="Next step for the user")


class CsrfTokenResponse(CamelModel):
    csrf_token: str = Field(description="Token to echo in the X-CSRF-Token header")


class TokenValidationResponse(CamelModel):
    valid: bool
    message: str | None = None
