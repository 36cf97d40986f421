"""LeaveDesk — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from leavedesk.common.exceptions import register_exception_handlers
from leavedesk.common.logging import setup_logging
from leavedesk.common.rate_limit import limiter
from leavedesk.config import settings
from leavedesk.core_hr.router import router as delegates_router
from leavedesk.database import engine
from leavedesk.leave.ledger import QuotaSettingsCache
from leavedesk.leave.router import router as leave_router
from leavedesk.notifications.router import router as notifications_router
from leavedesk.work_calendar.router import router as calendar_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("LeaveDesk starting (environment=%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("LeaveDesk stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="LeaveDesk",
        description="Leave management: duration, balances, approvals and year-end rollover",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Quota settings are cached per application instance
    app.state.quota_cache = QuotaSettingsCache()

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(calendar_router, prefix="/api/v1/calendar", tags=["calendar"])
    app.include_router(delegates_router, prefix="/api/v1/delegates", tags=["delegates"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])

    return app


app = create_app()
