"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from patientflow.core.config import settings
from patientflow.core.database import engine, get_db
from patientflow.core.exceptions import WorkflowError
from patientflow.core.logging import setup_logging
from patientflow.models import Base

# Initialize logging
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan events.

    Handles startup and shutdown tasks:
    - Database connection verification
    - Table creation when DB_AUTO_CREATE is set (development only)
    - Resource cleanup on shutdown
    """
    # Startup
    logger.info(
        "Starting PatientFlow API",
        extra={
            "version": settings.APP_VERSION,
            "env": settings.APP_ENV,
            "debug": settings.APP_DEBUG,
        },
    )

    # Verify database connection
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            break
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise

    if settings.DB_AUTO_CREATE:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.warning("Database tables created from models (DB_AUTO_CREATE)")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down PatientFlow API")

    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")

    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application with routers and error handlers."""
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Clinic patient flow: registration, payment, queue, consultation and discharge",
        docs_url="/api/docs" if settings.APP_DEBUG else None,
        redoc_url="/api/redoc" if settings.APP_DEBUG else None,
        openapi_url="/api/openapi.json" if settings.APP_DEBUG else None,
        lifespan=lifespan,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": type(exc).__name__},
        )

    # Root endpoint
    @application.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/api/docs",
        }

    # Include API routers
    from patientflow.api.v1 import api_router

    application.include_router(api_router, prefix="/api/v1")
    return application


app = create_app()
