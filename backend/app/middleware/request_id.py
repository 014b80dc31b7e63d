"""
MeMantra Backend — Request ID Middleware
==========================================

What:  Assigns each request a short correlation ID and returns it in the
       X-Request-ID response header.
How:   Reuses a client-supplied X-Request-ID (the mobile app sends one with
       error reports) or generates one, and stores it in a ContextVar so the
       access log and exception handlers can tag their lines.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
