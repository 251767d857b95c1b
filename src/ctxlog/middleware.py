"""Request-scoped log context middleware."""

import uuid
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ctxlog.logger import logger
from ctxlog.storage import get_log_context, log_context

SESSION_ID_HEADER = "X-Session-ID"
REQUEST_ID_HEADER = "X-Request-ID"


class LogContextMiddleware(BaseHTTPMiddleware):
    """Establish a log context for each request.

    This middleware:
    - Extracts the session ID from headers or generates a new one
    - Runs the rest of the request inside a context carrying it
    - Echoes the session ID in the response headers
    """

    def __init__(self, app, service: str | None = None, category: str = "http") -> None:
        super().__init__(app)
        self.service = service
        self.category = category

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        session_id = (
            request.headers.get(SESSION_ID_HEADER)
            or request.headers.get(REQUEST_ID_HEADER)
            or str(uuid.uuid4())
        )

        context = (
            get_log_context()
            .with_session_id(session_id)
            .with_category(self.category)
            .with_metadata(method=request.method, path=request.url.path)
        )
        if self.service:
            context = context.with_service(self.service)

        with log_context(context):
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error("request_failed", e)
                raise

        response.headers[SESSION_ID_HEADER] = session_id
        return response
