"""Application factory for the travel booking API."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .core.config import settings
from .core.database import close_db, engine, init_db
from .core.events import EventBus
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from .core.middleware import REQUEST_ID_HEADER, setup_middleware
from .core.observability import (
    SERVICE_NAME,
    SERVICE_VERSION,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_structured_logging,
    setup_tracing,
)
from .routers import admin, booking, health, metrics, package, user, wishlist

setup_structured_logging()

logger = logging.getLogger(__name__)

API_ROUTERS = (health, package, booking, wishlist, admin, user, metrics)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "Starting travel booking API",
        extra={"environment": settings.environment, "debug": settings.debug},
    )
    setup_tracing(SERVICE_NAME)
    instrument_sqlalchemy(engine)
    await init_db()

    yield

    # Subscribers see end-of-stream before the pool goes away
    await app.state.event_bus.close()
    await close_db()
    logger.info("Travel booking API stopped")


def register_routes(app: FastAPI) -> None:
    """Attach the problem-details handlers and every API router."""
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    for module in API_ROUTERS:
        app.include_router(module.router)


async def liveness() -> dict:
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": settings.environment,
        "debug": settings.debug,
    }


async def readiness() -> dict:
    """Ready once the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database not reachable", extra={"error": str(exc)})
        database = "unavailable"
    else:
        database = "ok"

    return {
        "status": "ready" if database == "ok" else "not_ready",
        "service": SERVICE_NAME,
        "checks": {"database": database, "event_bus": "ok"},
    }


async def service_info() -> dict:
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Travel package reservations with atomic availability tracking",
        "environment": settings.environment,
        "debug": settings.debug,
        "features": {
            "restock_policy": settings.restock_enabled,
            "currency_conversion": True,
            "booking_events": True,
            "tracing": bool(settings.otlp_endpoint),
            "problem_details": True,
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "info": "/info",
            "metrics": "/metrics",
            "docs": "/docs" if settings.debug else None,
        },
    }


def create_app() -> FastAPI:
    """
    Build a fully wired application.

    Each call gets its own ``EventBus`` on ``app.state``, so separate
    instances never share subscribers.
    """
    app = FastAPI(
        title="Travel Booking API",
        description="RPC-over-HTTP API for travel package reservations, wishlists and booking analytics",
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.event_bus = EventBus(buffer_size=settings.event_buffer_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    setup_middleware(app, enable_logging=True)
    instrument_fastapi(app)

    register_routes(app)
    app.add_api_route("/health", liveness, methods=["GET"], tags=["Health"], summary="Liveness probe")
    app.add_api_route("/ready", readiness, methods=["GET"], tags=["Health"], summary="Readiness probe")
    app.add_api_route("/info", service_info, methods=["GET"], tags=["Info"], summary="Service information")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "travel_booking.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
