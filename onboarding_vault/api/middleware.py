"""API middleware — correlation IDs and the last-resort 500."""

from __future__ import annotations

import logging
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach a unique X-Correlation-Id to every request/response.

    Exceptions no handler claimed are turned into a generic 500 here, so the
    error response still carries the correlation id and passes back out
    through CORS.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get("x-correlation-id") or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error on %s %s (correlation %s)",
                request.method,
                request.url.path,
                correlation_id,
            )
            response = JSONResponse({"error": "Internal error"}, status_code=500)
        response.headers["X-Correlation-Id"] = correlation_id
        return response
