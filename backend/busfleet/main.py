"""
FastAPI entrypoint for the Busfleet finance backend.
"""
import logging
import os
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from busfleet.core.config import settings as default_settings, Settings
from busfleet.core.errors import register_exception_handlers
from busfleet.core.logging import init_logging, request_context_middleware
from busfleet.api.router import api_router
from busfleet.services.profit_sharing_service import ProfitSharingService

logger = logging.getLogger(__name__)


def create_app(settings_override: Optional[Settings] = None) -> FastAPI:
    """Application factory.

    Services that hold process-wide state (the per-group locks of the
    profit-sharing ledger) are built here once and reached by handlers
    through app.state.
    """
    settings = settings_override or default_settings
    settings.check_production_ready()
    init_logging(level=settings.LOG_LEVEL, json_lines=settings.LOG_JSON)

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Back-office API for bus fleet finances and profit sharing",
        version="1.0.0",
        debug=settings.DEBUG,
    )
    app.state.settings = settings
    app.state.profit_sharing_service = ProfitSharingService()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Request id / logging context
    app.middleware("http")(request_context_middleware)

    register_exception_handlers(app, debug=settings.DEBUG and not settings.is_production)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    # Uploaded documents (invoices) are served from UPLOAD_DIR
    if os.path.exists(settings.UPLOAD_DIR):
        app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"{settings.APP_NAME} API is running"}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    logger.debug(f"Application created ({settings.ENVIRONMENT})")
    return app


app = create_app()
