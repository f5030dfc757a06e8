"""
Application Intake API

Public job-application submission plus the admin review API.
Run with: uvicorn intake_api.main:app --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intake_api.config.database import init_db
from intake_api.config.settings import settings
from intake_api.endpoints import api_router, health_router
from intake_api.integrations.s3 import init_storage
from intake_api.integrations.ses import init_mailer
from intake_api.middleware.error_handler import setup_exception_handlers
from intake_api.middleware.logging import LoggingMiddleware, configure_logging
from intake_api.middleware.security import SecurityMiddleware

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check integrations and prepare the database before serving."""
    logger.info(
        "Application Intake API starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    # Fatal in production; elsewhere the feature is switched off
    storage = init_storage()
    mailer = init_mailer()
    logger.info(
        "Integrations ready",
        cv_storage=storage is not None,
        email=mailer is not None,
    )

    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables ensured")

    yield

    logger.info("Application Intake API stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware and routes."""
    docs_enabled = settings.DEBUG
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Job application intake: submissions, CV storage and review",
        docs_url="/api/docs" if docs_enabled else None,
        redoc_url="/api/redoc" if docs_enabled else None,
        openapi_url="/api/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    setup_exception_handlers(application)

    # Added innermost first: CORS, then rate limits/headers, then access logs
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    application.add_middleware(SecurityMiddleware)
    application.add_middleware(LoggingMiddleware)

    application.include_router(api_router, prefix="/api")
    application.include_router(health_router, prefix="/health", tags=["Health"])

    @application.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": application.docs_url,
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "intake_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
