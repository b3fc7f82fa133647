"""FastAPI application factory and configuration."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import ReferralError, StorageError
from app.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting Affiliate Tracker in {settings.ENVIRONMENT} mode")
    logger.info(f"Base URL: {settings.APP_BASE_URL}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials

    if settings.AUTO_CREATE_TABLES:
        from app import models  # noqa: F401
        from app.database import init_db

        await init_db()

    yield
    # Shutdown
    logger.info("Shutting down Affiliate Tracker")


async def referral_error_handler(request: Request, exc: ReferralError) -> JSONResponse:
    """Render domain exceptions in the standard error format."""
    if isinstance(exc, StorageError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_exception(exc).model_dump(),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Affiliate Tracker",
        description="Referral code issuance and click attribution for wallet-based affiliates",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"[REQ] {request.method} {request.url.path}")
        return await call_next(request)

    app.add_exception_handler(ReferralError, referral_error_handler)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "affiliate-tracker",
            "version": "0.1.0",
            "environment": settings.ENVIRONMENT,
        }

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "message": "Affiliate Tracker API",
            "docs": "/docs",
            "health": "/health",
        }

    # Mount routes
    from app.routes import admin, referrals, tracking

    app.include_router(referrals.router, prefix="/api", tags=["Referrals"])
    app.include_router(admin.router, prefix="/api", tags=["Admin"])
    app.include_router(tracking.router, tags=["Tracking"])

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
