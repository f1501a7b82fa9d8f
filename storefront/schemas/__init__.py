"""
Pydantic schemas for request validation and response serialization.
"""

from storefront.schemas.account import (
    AccountProfileResponse,
    AuditEntryResponse,
    ConsentHistoryResponse,
    ConsentStatusResponse,
    ConsentUpdateRequest,
    DataExportResponse,
)
from storefront.schemas.admin import AdminUserResponse, CreateAdminRequest
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
from storefront.schemas.common import CamelModel, MessageResponse

__all__ = [
    "AccountProfileResponse",
    "AdminUserResponse",
    "AuditEntryResponse",
    "CamelModel",
    "ConsentHistoryResponse",
    "ConsentStatusResponse",
    "ConsentUpdateRequest",
    "CreateAdminRequest",
    "CsrfTokenResponse",
    "DataExportResponse",
    "ForgotPasswordRequest",
    "LoginRequest",
    "MessageResponse",
    "PrincipalResponse",
    "RegisterRequest",
    "RegisterResponse",
    "ResendVerificationRequest",
    "ResetPasswordRequest",
    "TokenValidationResponse",
]
