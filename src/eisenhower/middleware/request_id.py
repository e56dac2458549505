"""Request ID middleware — one id per request, in every log line and error page.

Learn: The id comes from an incoming X-Request-ID header when a proxy
already assigned one, otherwise a fresh uuid4. Incoming ids end up in
logs and HTML, so only short token-like values are trusted; anything
else is replaced.

The id is bound to structlog's contextvars together with the method and
path, so auth.session_resolved, task.created, mail.sent and friends all
carry it. It is also kept on request.state for error.html ("quote this
id") and echoed in the response header.
"""

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"

_TRUSTED = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def request_id_for(request: Request) -> str:
    incoming = request.headers.get(HEADER, "")
    return incoming if _TRUSTED.match(incoming) else uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request_id_for(request)
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )

        response: Response = await call_next(request)
        response.headers[HEADER] = request_id
        return response
