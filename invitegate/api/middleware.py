"""Per-request logging context for the identity endpoints."""

import re
import time
from typing import Optional
from uuid import uuid4

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-Id"

# Inbound ids are echoed into logs and headers
_INBOUND_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]{1,64}")

logger = structlog.get_logger(__name__)


def resolve_correlation_id(inbound: Optional[str]) -> str:
    """Reuse a well-formed inbound id, otherwise mint a fresh one."""
    if inbound and _INBOUND_ID_PATTERN.fullmatch(inbound):
        return inbound
    return str(uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind correlation id, method and path to the structlog context.

    Logs one ``request_completed`` event per request with its status and
    duration. Headers are never logged, so bearer tokens stay out of stdout.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_HEADER))
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        response.headers[CORRELATION_HEADER] = correlation_id

        return response
