"""
Main FastAPI application for the valley weather dashboard.

This module contains the main FastAPI application instance and root endpoint.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from valleywx.config import settings
from valleywx.routers.forecast import router as forecast_router
from valleywx.routers.status import router as status_router
from valleywx.routers.verification import router as verification_router
from valleywx.utils.logging_config import get_logger, setup_logging

# Import all models to ensure SQLAlchemy relationships are properly configured
import valleywx.models  # noqa: F401 - triggers import of all model classes

# Initialize logging
setup_logging()
logger = get_logger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Note: Database tables are managed through Alembic migrations.
    Run `alembic upgrade head` to create/update database tables.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"{settings.SERVER_NAME} - Application starting up")
    logger.info(f"Environment: {'Development' if settings.DEBUG else 'Production'}")
    logger.info(f"API Version: {settings.API_V1_STR}")
    logger.info(f"Database: {settings.SQLALCHEMY_DATABASE_URI.split('://')[0]}")
    logger.info(f"Timezone: {settings.TIMEZONE}, nowcast {'enabled' if settings.NOWCAST_ENABLED else 'disabled'}")
    logger.info("=" * 60)

    from sqlalchemy.orm import configure_mappers
    configure_mappers()
    logger.info("SQLAlchemy mappers configured successfully")

    yield

    # Shutdown
    logger.info("=" * 60)
    logger.info(f"{settings.SERVER_NAME} - Application shutting down")
    logger.info("=" * 60)


app = FastAPI(
    title=f"{settings.SERVER_NAME} API",
    description="Bias-corrected hyperlocal forecasts for an alpine valley",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Set up CORS
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.get("/")
@limiter.limit(f"{settings.RATE_LIMIT_REQUESTS}/{settings.RATE_LIMIT_WINDOW}seconds")
async def root(request: Request):
    """
    Root endpoint returning API information.
    """
    return {
        "message": f"Welcome to the {settings.SERVER_NAME} API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
@limiter.limit("60/minute")  # More generous limit for health checks
async def health_check(request: Request):
    """
    Health check endpoint.

    Rate limit: 60 requests per minute
    """
    return {"status": "healthy"}


# Include routers
app.include_router(status_router, prefix=settings.API_V1_STR)
app.include_router(forecast_router, prefix=settings.API_V1_STR)
app.include_router(verification_router, prefix=settings.API_V1_STR)
