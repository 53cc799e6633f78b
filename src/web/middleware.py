"""
Request tracing middleware.

Binds a request ID (and the intake session ID, when the client sends one)
to the logging context variables so every log line written while handling
the request carries them.
"""

import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from services.logging_config import request_id_var, session_id_var

REQUEST_ID_HEADER = "X-Request-ID"
SESSION_ID_HEADER = "X-Session-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Inject request ID into all requests for tracing.

    An incoming X-Request-ID is reused, otherwise a new one is generated.
    The ID is echoed in the response headers.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req-{uuid.uuid4().hex[:16]}"
        request.state.request_id = request_id

        request_token = request_id_var.set(request_id)
        session_token = session_id_var.set(request.headers.get(SESSION_ID_HEADER))
        try:
            response = await call_next(request)
        finally:
            session_id_var.reset(session_token)
            request_id_var.reset(request_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
