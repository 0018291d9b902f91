"""
FastAPI application for the availability and booking engine

Reads are served from the per-process availability cache; writes go through the
conflict guard and invalidate it.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from booking_engine.api.dependencies import get_availability_cache
from booking_engine.api.v1.router import api_v1_router
from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import (
    BusinessClosed,
    InvalidInterval,
    InvalidTransition,
    NotFound,
    StoreUnavailable,
)
from booking_engine.core.middleware import correlation_id_middleware, request_logging_middleware
from booking_engine.core.monitoring import health_router
from booking_engine.services.availability.invalidation import InvalidationListener
from booking_engine.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging(verbose=settings.DEBUG)
    logger.info(f"{settings.APP_NAME} starting up")

    listener = None
    if settings.CACHE_BROADCAST_ENABLED:
        listener = InvalidationListener(get_availability_cache())
        listener.start()

    yield

    # Shutdown
    if listener:
        listener.stop()
    logger.info(f"{settings.APP_NAME} shutting down")


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": str(exc)})


def register_exception_handlers(app: FastAPI):
    """Map engine errors to HTTP responses"""

    @app.exception_handler(InvalidInterval)
    async def invalid_interval_handler(request: Request, exc: InvalidInterval):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_interval", exc)

    @app.exception_handler(BusinessClosed)
    async def business_closed_handler(request: Request, exc: BusinessClosed):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "business_closed", exc)

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return _error(status.HTTP_404_NOT_FOUND, "not_found", exc)

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return _error(status.HTTP_409_CONFLICT, "invalid_transition", exc)

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "store_unavailable", exc)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Availability resolution and conflict-free booking",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "PUT"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "booking_engine.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
