"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from database.engine import close_db
from api.routes import health
from api.routes.v1 import inbox, tickets

from core.middleware import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    StructuredLoggingMiddleware,
    setup_logging,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Schema is owned by the Alembic migrations
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


def create_app() -> FastAPI:
    """Build the application with middleware and routers."""
    app = FastAPI(
        title=settings.app_name,
        description="Application conversations and company support tickets",
        version=health.VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Setup error handlers (before middleware)
    setup_error_handlers(app)

    # Middleware executes in reverse order of registration
    # 1. Error handling middleware (outermost - catches all errors)
    app.add_middleware(
        ErrorHandlingMiddleware,
        debug=settings.debug,
    )

    # 2. Structured logging middleware (logs all requests/responses)
    app.add_middleware(
        StructuredLoggingMiddleware,
        log_request_body=settings.log_request_body,
        max_body_size=settings.log_max_body_size,
    )

    # 3. CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # API v1 routes
    app.include_router(
        inbox.router,
        prefix=f"{settings.api_v1_prefix}/inbox",
        tags=["Inbox"],
    )
    app.include_router(
        tickets.router,
        prefix=f"{settings.api_v1_prefix}/tickets",
        tags=["Tickets"],
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
