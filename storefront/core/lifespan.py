import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront.core.config import settings
from storefront.core.database import (
    close_database_connection,
    create_database_engine,
    create_session_factory,
)
from storefront.models import Base
from storefront.services.admin_service import bootstrap_primary_admin

logger = logging.getLogger(__name__)


# ============================================================================
# Lifespan Context Manager
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore
    """
    Lifespan context manager for startup and shutdown events.

    Handles:
    - Database engine creation and storage in app.state
    - Session factory creation
    - Optional table creation (DATABASE_CREATE_TABLES, development only)
    - Primary admin bootstrap
    - Resource cleanup on shutdown
    """
    logger.info(f"Starting {settings.app_name} v{settings.version}")
    logger.info(f"Environment: {settings.environment}")

    if settings.is_production and settings.uses_default_secret_key:
        logger.warning("SECRET_KEY is not set; session cookies are signed with the development key")

    engine = create_database_engine()
    app.state.sessionmaker = create_session_factory(engine)
    logger.info("Sessionmaker created successfully")

    if settings.database_create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    await bootstrap_primary_admin(app.state.sessionmaker)

    yield

    logger.info("Shutting down application")
    await close_database_connection(engine)
    app.state.sessionmaker = None
