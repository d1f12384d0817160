"""Middleware that tags every request with a correlation id."""
import secrets

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"


def generate_request_id() -> str:
    return f"req_{secrets.token_hex(8)}"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Stores the correlation id on request.state.request_id and echoes it in
    the X-Request-ID response header. A caller-supplied id is reused.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
