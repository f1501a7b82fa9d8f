"""
Custom exception classes for the ZK REZK storefront.

This module defines a hierarchy of custom exceptions that map to HTTP status codes
and provide consistent error responses across the API. User-facing messages are
in Portuguese (pt-BR), the storefront's language.

Exception hierarchy:
    AppException (base)
    ├── AuthenticationError (401)
    │   ├── InvalidCredentialsError
    │   └── NotAuthenticatedError
    ├── AuthorizationError (403)
    │   ├── InsufficientPermissionsError
    │   ├── PrimaryAdminRequiredError
    │   ├── ForbiddenError
    │   ├── CsrfRejectedError
    │   └── EmailNotVerifiedError
    ├── ResourceError
    │   └── NotFoundError (404)
    ├── ValidationError (400)
    │   ├── DuplicateUsernameError
    │   └── WeakPasswordError
    ├── TokenError (400)
    │   ├── TokenInvalidError
    │   └── TokenExpiredError
    └── RateLimitExceededError (429)
"""

from typing import Any


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    Attributes:
        status_code: HTTP status code for the error
        error_code: Machine-readable error code
        message: Human-readable error message
        details: Extra fields merged into the response body
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Details are merged at the top level so clients read e.g. ``feedback``
        or ``needsVerification`` directly next to ``message``.
        """
        return {
            "message": self.message,
            "code": self.error_code,
            **self.details,
        }


# =============================================================================
# Authentication Errors (401 Unauthorized)
# =============================================================================


class AuthenticationError(AppException):
    """Base class for authentication errors."""

    def __init__(
        self,
        message: str = "Falha na autenticação",
        error_code: str = "AUTHENTICATION_FAILED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details,
        )


class InvalidCredentialsError(AuthenticationError):
    """
    Raised when login credentials are invalid.

    The message is identical whether the username is unknown or the password
    is wrong. ``reason`` and ``user_id`` are for the audit trail only and are
    never rendered into the response.
    """

    def __init__(
        self,
        reason: str = "invalid_credentials",
        user_id: int | None = None,
    ) -> None:
        super().__init__(
            message="Email ou senha inválidos",
            error_code="INVALID_CREDENTIALS",
        )
        self.reason = reason
        self.user_id = user_id


class NotAuthenticatedError(AuthenticationError):
    """Raised when a route requires an authenticated session."""

    def __init__(self, message: str = "Não autenticado") -> None:
        super().__init__(message=message, error_code="NOT_AUTHENTICATED")


# =============================================================================
# Authorization Errors (403 Forbidden)
# =============================================================================


class AuthorizationError(AppException):
    """Base class for authorization errors."""

    def __init__(
        self,
        message: str = "Acesso negado",
        error_code: str = "AUTHORIZATION_FAILED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code=error_code,
            details=details,
        )


class InsufficientPermissionsError(AuthorizationError):
    """Raised when a non-admin calls an admin-only route."""

    def __init__(
        self,
        message: str = "Acesso negado. Apenas administradores.",
    ) -> None:
        super().__init__(message=message, error_code="INSUFFICIENT_PERMISSIONS")


class PrimaryAdminRequiredError(AuthorizationError):
    """Raised when an admin other than the primary admin manages admin accounts."""

    def __init__(
        self,
        message: str = "Apenas o administrador principal pode gerenciar outros administradores.",
    ) -> None:
        super().__init__(message=message, error_code="PRIMARY_ADMIN_REQUIRED")


class ForbiddenError(AuthorizationError):
    """Raised when an action violates a business rule."""

    def __init__(self, message: str = "Esta ação não é permitida") -> None:
        super().__init__(message=message, error_code="FORBIDDEN")


class CsrfRejectedError(AuthorizationError):
    """Raised when the CSRF token is missing, unknown or does not match the session."""

    def __init__(self) -> None:
        super().__init__(
            message="Sessão inválida. Atualize a página e tente novamente.",
            error_code="CSRF_REJECTED",
        )


class EmailNotVerifiedError(AuthorizationError):
    """Raised on login by a customer whose email address is not confirmed yet."""

    def __init__(self, email: str, user_id: int | None = None) -> None:
        super().__init__(
            message="Por favor, confirme seu email antes de fazer login.",
            error_code="EMAIL_NOT_VERIFIED",
            details={"needsVerification": True, "email": email},
        )
        self.user_id = user_id


# =============================================================================
# Resource Errors
# =============================================================================


class ResourceError(AppException):
    """Base class for resource-related errors."""

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class NotFoundError(ResourceError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Usuário não encontrado") -> None:
        super().__init__(message=message, status_code=404, error_code="NOT_FOUND")


# =============================================================================
# Validation Errors (400 Bad Request)
# =============================================================================


class ValidationError(AppException):
    """Base class for input validation errors."""

    def __init__(
        self,
        message: str = "Dados inválidos",
        error_code: str = "VALIDATION_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details,
        )


class DuplicateUsernameError(ValidationError):
    """Raised when creating a user whose username is already taken."""

    def __init__(self, message: str = "Este email já está em uso") -> None:
        super().__init__(message=message, error_code="DUPLICATE_USERNAME")


class WeakPasswordError(ValidationError):
    """Raised when a password fails the password policy."""

    def __init__(self, feedback: list[str], strength: str) -> None:
        super().__init__(
            message="A senha não atende aos requisitos mínimos de segurança",
            error_code="WEAK_PASSWORD",
            details={"feedback": feedback, "strength": strength},
        )
        self.feedback = feedback
        self.strength = strength


# =============================================================================
# One-time Token Errors (400 Bad Request)
# =============================================================================


class TokenError(AppException):
    """Base class for password-reset and email-verification token failures."""

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details,
        )


class TokenInvalidError(TokenError):
    """Raised for unknown or already-used tokens. Both share one message."""

    def __init__(
        self,
        message: str = "Token inválido ou já utilizado",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code="TOKEN_INVALID", details=details)


class TokenExpiredError(TokenError):
    """Raised when a well-formed token is past its expiry."""

    def __init__(
        self,
        message: str = "Token expirado. Por favor, solicite um novo link de recuperação.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code="TOKEN_EXPIRED", details=details)


# =============================================================================
# Rate Limiting (429 Too Many Requests)
# =============================================================================


class RateLimitExceededError(AppException):
    """Raised when a client exceeds the attempt budget of a route."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            message="Muitas tentativas. Por favor, aguarde antes de tentar novamente.",
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
            details={"retryAfter": retry_after},
        )
        self.retry_after = retry_after
