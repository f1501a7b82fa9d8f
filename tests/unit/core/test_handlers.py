"""
Unit tests for exception handlers.

Tests cover:
- AppException handler response format
- Rate limit handler (Retry-After header)
- Validation error handler formatting
- General exception handler (debug vs production)
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from storefront.core.handlers import (
    app_exception_handler,
    general_exception_handler,
    rate_limit_handler,
    validation_exception_handler,
)
from storefront.exceptions import (
    EmailNotVerifiedError,
    InvalidCredentialsError,
    NotFoundError,
    RateLimitExceededError,
    WeakPasswordError,
)


@pytest.fixture
def mock_request() -> MagicMock:
    """Create a mock request with request_id in state."""
    request = MagicMock(spec=Request)
    request.state.request_id = "test-request-123"
    request.url.path = "/api/auth/login"
    return request


@pytest.fixture
def mock_request_no_id() -> MagicMock:
    """Create a mock request without request_id."""
    request = MagicMock(spec=Request)
    request.state = MagicMock(spec=[])
    request.url.path = "/api/auth/login"
    return request


class TestAppExceptionHandler:
    """Tests for app_exception_handler."""

    @pytest.mark.asyncio
    async def test_returns_status_code(self, mock_request: MagicMock) -> None:
        response = await app_exception_handler(mock_request, NotFoundError())
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_body_has_message_and_code(self, mock_request: MagicMock) -> None:
        response = await app_exception_handler(mock_request, NotFoundError())

        assert json.loads(response.body) == {
            "message": "Usuário não encontrado",
            "code": "NOT_FOUND",
        }

    @pytest.mark.asyncio
    async def test_request_id_is_not_in_body(self, mock_request: MagicMock) -> None:
        response = await app_exception_handler(mock_request, InvalidCredentialsError())
        assert b"test-request-123" not in response.body

    @pytest.mark.asyncio
    async def test_credential_failures_are_indistinguishable(
        self, mock_request: MagicMock
    ) -> None:
        unknown = await app_exception_handler(
            mock_request, InvalidCredentialsError(reason="user_not_found")
        )
        wrong = await app_exception_handler(
            mock_request, InvalidCredentialsError(reason="wrong_password", user_id=7)
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.body == wrong.body

    @pytest.mark.asyncio
    async def test_details_are_merged_at_top_level(self, mock_request: MagicMock) -> None:
        response = await app_exception_handler(
            mock_request, EmailNotVerifiedError("novo@example.com", user_id=3)
        )
        data = json.loads(response.body)

        assert response.status_code == 403
        assert data["needsVerification"] is True
        assert data["email"] == "novo@example.com"
        assert "user_id" not in data

    @pytest.mark.asyncio
    async def test_weak_password_feedback(self, mock_request: MagicMock) -> None:
        response = await app_exception_handler(
            mock_request, WeakPasswordError(feedback=["Um número"], strength="weak")
        )
        data = json.loads(response.body)

        assert response.status_code == 400
        assert data["feedback"] == ["Um número"]
        assert data["strength"] == "weak"

    @pytest.mark.asyncio
    async def test_without_request_id(self, mock_request_no_id: MagicMock) -> None:
        response = await app_exception_handler(mock_request_no_id, NotFoundError())
        assert response.status_code == 404


class TestRateLimitHandler:
    @pytest.mark.asyncio
    async def test_returns_429_with_retry_after(self, mock_request: MagicMock) -> None:
        response = await rate_limit_handler(mock_request, RateLimitExceededError(120))
        data = json.loads(response.body)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "120"
        assert data["retryAfter"] == 120
        assert data["code"] == "RATE_LIMIT_EXCEEDED"


class TestValidationExceptionHandler:
    """Tests for validation_exception_handler."""

    @pytest.mark.asyncio
    async def test_returns_400_with_field_errors(self, mock_request: MagicMock) -> None:
        exc = RequestValidationError(
            [
                {
                    "loc": ("body", "consentTerms"),
                    "msg": "Value error, Você precisa aceitar os Termos de Uso",
                    "type": "value_error",
                },
                {
                    "loc": ("query", "token"),
                    "msg": "Field required",
                    "type": "missing",
                },
            ]
        )

        response = await validation_exception_handler(mock_request, exc)
        data = json.loads(response.body)

        assert response.status_code == 400
        assert data["message"] == "Dados inválidos"
        assert data["code"] == "VALIDATION_ERROR"
        assert data["errors"] == [
            {
                "field": "consentTerms",
                "message": "Você precisa aceitar os Termos de Uso",
                "type": "value_error",
            },
            {"field": "token", "message": "Field required", "type": "missing"},
        ]

    @pytest.mark.asyncio
    async def test_nested_location(self, mock_request: MagicMock) -> None:
        exc = RequestValidationError(
            [{"loc": ("body", "items", 0, "name"), "msg": "Field required", "type": "missing"}]
        )

        response = await validation_exception_handler(mock_request, exc)

        assert json.loads(response.body)["errors"][0]["field"] == "items.0.name"


class TestGeneralExceptionHandler:
    """Tests for general_exception_handler."""

    @pytest.mark.asyncio
    async def test_hides_details_outside_debug(self, mock_request: MagicMock) -> None:
        with patch("storefront.core.handlers.settings") as mock_settings:
            mock_settings.debug = False
            response = await general_exception_handler(mock_request, RuntimeError("db password"))

        data = json.loads(response.body)
        assert response.status_code == 500
        assert data["code"] == "INTERNAL_ERROR"
        assert "db password" not in data["message"]

    @pytest.mark.asyncio
    async def test_shows_details_in_debug(self, mock_request: MagicMock) -> None:
        with patch("storefront.core.handlers.settings") as mock_settings:
            mock_settings.debug = True
            response = await general_exception_handler(mock_request, RuntimeError("boom"))

        assert json.loads(response.body)["message"] == "boom"
