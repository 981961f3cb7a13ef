"""Request context middleware for structured logging."""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request_id to structlog context vars for the whole request.

    A caller-supplied X-Request-ID is reused so a search can be traced across
    services; otherwise a new one is generated. The id is echoed back on the
    response.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        structlog.contextvars.clear_contextvars()
        return response
