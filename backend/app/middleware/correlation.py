# backend/app/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

This middleware:
1. Takes the correlation ID from the request headers, or generates one
2. Binds it for the request (every log record of the request carries it)
3. Echoes it in the response headers

Correlation ID Sources (in order of precedence):
1. X-Correlation-ID header (from client or upstream service)
2. X-Request-ID header (alternative header name)
3. Generated UUID if neither header holds a usable value

Client Usage:
    curl -H "X-Correlation-ID: my-trace-123" http://localhost:8000/api/health
    # X-Correlation-ID: my-trace-123
"""

import logging
import re
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.utils.context import correlation_scope

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied IDs end up in log lines; keep them short and printable
_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds one correlation ID per request and returns it to the client."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        with correlation_scope(correlation_id=self._incoming_id(request)) as correlation_id:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response

    def _incoming_id(self, request: Request) -> str | None:
        """First well-formed ID from the headers; None lets the scope generate one."""
        for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
            value = request.headers.get(header)
            if not value:
                continue
            if _VALID_CORRELATION_ID.match(value):
                return value
            logger.debug(f"Ignoring malformed {header} header")
        return None
