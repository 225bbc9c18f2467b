"""
Observability.

Correlation IDs for requests and the log records emitted while serving them,
plus one structured access line per request.
"""

import time
import uuid
import logging
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("freight")

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="-")


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the correlation id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id.get()
        return True


def configure_logging(debug: bool = False) -> None:
    """Attach a correlation-aware handler to the `freight` logger (once)."""
    if any(isinstance(f, CorrelationIdFilter) for h in logger.handlers for f in h.filters):
        return

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
    ))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # 1. Generate or extract Correlation ID
        request_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id.set(request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            correlation_id.reset(token)

        # 2. Timing headers
        process_time = (time.perf_counter() - start_time) * 1000  # ms
        response.headers[CORRELATION_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.2f}"

        # 3. Structured access line, level follows the status
        log_data = {
            "correlation_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(process_time, 2),
        }

        if response.status_code >= 500:
            logger.error("Request failed", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("Request rejected", extra=log_data)
        else:
            logger.info("Request served", extra=log_data)

        return response
