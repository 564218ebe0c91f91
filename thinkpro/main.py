"""
Main application entry point for the ThinkPro assessment service.

This module builds the FastAPI application, registers the assessment
routers, the error handlers and the database lifecycle.

Usage:
    - Direct: python -m thinkpro.main
    - ASGI server: uvicorn thinkpro.main:app
"""

import os

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from thinkpro import __version__
from thinkpro.api import (
    thinkpro_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler
)
from thinkpro.assessments.controllers import router as assessment_router
from thinkpro.assessments.student_controllers import router as student_assessment_router
from thinkpro.common.error_handling import ThinkProError
from thinkpro.common.logger import app_logger
from thinkpro.config import Settings, settings as default_settings
from thinkpro.database.init_db import close_database, initialize_database

# Setup module logger
logger = app_logger.getChild("main")


def create_app(settings: Settings = default_settings, init_database: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to build the app with
        init_database: Whether to open the database on startup

    Returns:
        The configured application
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Assessment lifecycle and scoring API for ThinkPro schools",
        version=__version__
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ThinkProError, thinkpro_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(assessment_router, prefix=f"{settings.API_PREFIX}/assessments", tags=["assessments"])
    app.include_router(
        student_assessment_router,
        prefix=f"{settings.API_PREFIX}/student-assessments",
        tags=["student-assessments"]
    )

    if init_database:
        @app.on_event("startup")
        async def startup_event():
            """Initialize services on application startup."""
            try:
                await initialize_database(
                    database_url=settings.DATABASE_URL,
                    echo=settings.SQL_ECHO,
                    pool_size=settings.DB_POOL_SIZE,
                    max_overflow=settings.DB_MAX_OVERFLOW,
                    pool_timeout=settings.DB_POOL_TIMEOUT,
                    create_tables=settings.AUTO_CREATE_TABLES
                )
                logger.info("Application startup complete")
            except Exception as e:
                logger.error(f"Failed to initialize application: {str(e)}")
                raise

        @app.on_event("shutdown")
        async def shutdown_event():
            """Cleanup services on application shutdown."""
            try:
                await close_database()
                logger.info("Application shutdown complete")
            except Exception as e:
                logger.error(f"Error during application shutdown: {str(e)}")
                raise

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"Welcome to {settings.PROJECT_NAME}", "version": __version__}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    logger.info(f"Application initialized with {len(app.routes)} routes")
    return app


app = create_app()

# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "thinkpro.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
