"""
FastAPI Application Entry Point.

Builds the Star Booking API: `/v1` routes, the error envelope handlers,
request correlation and a database-aware health check.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.db.session import engine, Base, get_db
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from backend.app.core.observability import ObservabilityMiddleware, configure_logging

# Every table must be on Base.metadata before create_all runs
from backend.app.models import (  # noqa: F401
    user,
    transaction,
    ledger_entry,
    availability,
    appointment,
    dedication_request,
    live_show,
    live_show_attendance,
    reconciliation_item,
    notification,
)

logger = logging.getLogger("starbooking.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready", extra={"tables": len(Base.metadata.tables)})
    yield
    await engine.dispose()


async def health_check(db: AsyncSession = Depends(get_db)):
    """Liveness plus a `SELECT 1` against the database; 503 when the database is unreachable."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        database = "unavailable"

    body = {
        "status": "healthy" if database == "ok" else "degraded",
        "database": database,
        "app_name": settings.app_name,
        "version": settings.api_version,
    }
    return JSONResponse(status_code=200 if database == "ok" else 503, content=body)


def create_app() -> FastAPI:
    configure_logging(settings.debug)

    application = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        debug=settings.debug,
        description="Coin wallet and booking backend for a fan/star marketplace",
        lifespan=lifespan,
    )
    application.add_middleware(ObservabilityMiddleware)

    application.add_exception_handler(AppException, app_exception_handler)
    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(Exception, generic_exception_handler)

    application.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    application.include_router(api_v1_router, prefix=f"/{settings.api_version}")
    return application


app = create_app()
