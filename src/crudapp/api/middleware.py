"""Request correlation middleware.

Propagates a request ID to logging and back to the client:
- x-request-id is taken from the request or generated
- the ID is set on the logging context for the duration of the request
- the same ID is echoed in the response headers
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from crudapp.observability.logging import request_id_var


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware for propagating the request ID."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

        token = request_id_var.set(request_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            request_id_var.reset(token)
