"""
FastAPI application entry point.

This module sets up:
- FastAPI application with middleware
- Exception handlers
- Per-route rate limiters and the server-side session manager
- API routes
- CORS configuration
"""

import logging

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.routes import account, admin, auth, health
from storefront.core.config import settings
from storefront.core.handlers import (
    app_exception_handler,
    general_exception_handler,
    rate_limit_handler,
    validation_exception_handler,
)
from storefront.core.lifespan import lifespan
from storefront.core.logging import setup_logging
from storefront.core.rate_limit import RateLimiterRegistry
from storefront.core.sessions import InMemorySessionStore, SessionManager
from storefront.exceptions import AppException, RateLimitExceededError
from storefront.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    ServerSessionMiddleware,
)
from storefront.services.email_service import EmailService

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """
    Build the application.

    Every call returns an independent app with its own rate-limit counters
    and session store.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description=settings.description,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # ========================================================================
    # Application State
    # ========================================================================
    app.state.rate_limiters = RateLimiterRegistry.from_settings(settings)
    app.state.session_manager = SessionManager(
        store=InMemorySessionStore(),
        cookie_name=settings.session_cookie_name,
        max_age_seconds=settings.session_max_age_seconds,
        secure=settings.is_production,
        same_site=settings.session_same_site,
    )
    app.state.email_service = EmailService.from_settings(settings)

    # ========================================================================
    # Exception Handlers
    # ========================================================================
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # ========================================================================
    # Middleware Setup (the last one added runs first)
    # ========================================================================
    # 1. Session (innermost, wraps only the routes)
    app.add_middleware(ServerSessionMiddleware, session_manager=app.state.session_manager)

    # 2. Security headers
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.is_production)

    # 3. Request logging (sees request_id set by the next one)
    app.add_middleware(RequestLoggingMiddleware)

    # 4. Request ID
    app.add_middleware(RequestIDMiddleware)

    # 5. CORS (outermost, so preflight never reaches the session layer)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # API Routes
    # ========================================================================
    api_router = APIRouter(prefix="/api")
    api_router.include_router(auth.router)
    api_router.include_router(admin.router)
    api_router.include_router(account.router)

    app.include_router(health.router)
    app.include_router(api_router)

    return app


setup_logging()
app = create_app()
