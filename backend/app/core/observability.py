"""
Observability: logging setup and request correlation.

Adds correlation IDs to requests and exposes them to every log record, so a
ledger mutation can be traced back to the HTTP call that caused it.
"""

import time
import uuid
import logging
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("starbooking.http")

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


class CorrelationIdFilter(logging.Filter):
    """Stamp the current request's correlation id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(debug: bool = False) -> None:
    """Configure the application logger tree once at startup."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] [cid=%(correlation_id)s] %(message)s"
    ))
    handler.addFilter(CorrelationIdFilter())

    app_logger = logging.getLogger("starbooking")
    app_logger.handlers = [handler]
    app_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    app_logger.propagate = False


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        token = correlation_id_var.set(correlation_id)
        try:
            start_time = time.perf_counter()
            response = await call_next(request)
            process_time = (time.perf_counter() - start_time) * 1000  # ms

            response.headers["X-Correlation-ID"] = correlation_id
            response.headers["X-Process-Time"] = str(round(process_time, 2))

            log_data = {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(process_time, 2),
                "ip": request.client.host if request.client else "unknown"
            }

            if response.status_code >= 500:
                logger.error("Request failed", extra=log_data)
            elif response.status_code >= 400:
                logger.warning("Request rejected", extra=log_data)
            else:
                logger.info("Request served", extra=log_data)

            return response
        finally:
            correlation_id_var.reset(token)
