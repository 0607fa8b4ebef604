"""
Threadboard Backend Application.

FastAPI application for a threaded discussion forum with
nested replies, post voting and user reputation.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1 import router as api_router
from app.core.config import settings
from app.core.database import async_session_maker, close_db, init_db
from app.core.exceptions import ForumError
from app.modules.forum.seed import seed_categories


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting Threadboard Backend...")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    if settings.forum_seed_categories:
        async with async_session_maker() as session:
            created = await seed_categories(session)
            await session.commit()
        logger.info(f"Seeded {created} default categories")

    logger.info("Threadboard Backend started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Threadboard Backend...")

    # Close database
    await close_db()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Threadboard Backend

    ## Features

    - **Categories**: Flat list of discussion sections
    - **Threads**: Pinned-first listings with view and reply counters
    - **Replies**: Nested reply trees
    - **Votes**: Up/down votes driving author reputation
    """,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.api_prefix)


# ==================== Error handlers ====================


@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError) -> ORJSONResponse:
    """Render domain errors with their own status code."""
    return ORJSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> ORJSONResponse:
    """Render schema violations as 400."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return ORJSONResponse(status_code=400, content={"error": message or "Invalid request"})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> ORJSONResponse:
    """Hide persistence failures behind a generic 500."""
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return ORJSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Log anything unexpected and answer with a JSON 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return ORJSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


@app.get("/", tags=["System"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": settings.api_prefix,
    }
