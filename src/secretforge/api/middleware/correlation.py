"""Request and correlation IDs for log lines and responses."""

from __future__ import annotations

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from secretforge.observability.logging import request_context

# Inbound IDs end up verbatim in log lines and response headers
_VALID_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def inbound_id(value: str | None) -> str | None:
    """A caller-supplied ID, or None when missing or not a safe token."""
    if value and _VALID_ID.fullmatch(value):
        return value
    return None


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Tags each request with ``x-request-id`` and ``x-correlation-id``.

    A valid inbound request ID is reused, otherwise a UUID is generated.
    The correlation ID falls back to the request ID. Both are echoed on
    the response, including cache hits served by the route cache.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = inbound_id(request.headers.get("x-request-id")) or str(uuid.uuid4())
        correlation_id = inbound_id(request.headers.get("x-correlation-id")) or request_id

        with request_context(request_id, correlation_id):
            response = await call_next(request)

        response.headers["x-request-id"] = request_id
        response.headers["x-correlation-id"] = correlation_id
        return response
