"""
Exception handlers for FastAPI application.

This module provides:
- Custom application exception handler (AppException)
- Rate limit exceeded handler (adds the Retry-After header)
- Pydantic validation error handler (RequestValidationError)
- General unhandled exception handler (Exception)

The request id is returned in the X-Request-ID header and deliberately kept
out of the body, so equivalent failures produce byte-identical bodies.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.core.config import settings
from storefront.exceptions import AppException, RateLimitExceededError

logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom application exceptions.

    Converts AppException to proper HTTP responses with consistent format.
    """
    logger.warning(
        f"Application exception: {exc.error_code} - {exc.message} "
        f"(path={request.url.path}, request_id={getattr(request.state, 'request_id', 'unknown')})"
    )

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def rate_limit_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    """
    Handle rate limit exceeded errors.

    Returns 429 status with retry information in the body and header.
    """
    logger.warning(
        f"Rate limit exceeded: {request.url.path} retry_after={exc.retry_after}s "
        f"(request_id={getattr(request.state, 'request_id', 'unknown')})"
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=exc.to_dict(),
        headers={"Retry-After": str(exc.retry_after)},
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to a 400 response with field-level messages.
    """
    errors = []
    for error in exc.errors():
        # Drop the "body"/"query" prefix so the field path matches the payload
        location = [str(loc) for loc in error["loc"] if loc not in ("body", "query")]
        errors.append(
            {
                "field": ".".join(location),
                "message": error["msg"].removeprefix("Value error, "),
                "type": error["type"],
            }
        )

    logger.warning(
        f"Validation error on {request.url.path}: {[e['field'] for e in errors]} "
        f"(request_id={getattr(request.state, 'request_id', 'unknown')})"
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": "Dados inválidos",
            "code": "VALIDATION_ERROR",
            "errors": errors,
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full error and returns a generic error response to the client.
    """
    logger.error(
        f"Unexpected error: {str(exc)} "
        f"(request_id={getattr(request.state, 'request_id', 'unknown')})",
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": (
                "Ocorreu um erro inesperado. Tente novamente mais tarde."
                if not settings.debug
                else str(exc)
            ),
            "code": "INTERNAL_ERROR",
        },
    )
