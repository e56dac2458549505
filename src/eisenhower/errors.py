"""Error taxonomy and HTTP error presentation.

Learn: Services and guards raise AppError subclasses; they never build
responses themselves. The handlers registered by install_error_handlers()
turn every error into the same shape:

- JSON clients get {"status": <reason phrase>, "message": <text>}
- Clients whose Accept header prefers text/html get error.html rendered
  with the same status code

Validation failures from pydantic are reported as 400 Bad Request, and
anything unexpected becomes a 500 whose detail is only exposed when
settings.debug is on.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from eisenhower.config import settings

logger = structlog.get_logger()


class AppError(Exception):
    """Base class for every error with an HTTP meaning."""

    status_code: int = 500
    status: str = "Internal Server Error"
    default_message: str = "An unexpected error has occurred. Try again later."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(AppError):
    status_code = 400
    status = "Bad Request"
    default_message = "Failed to parse requested payload."


class Unauthorized(AppError):
    """No proven identity, or a non-administrator touched the admin flag."""

    status_code = 401
    status = "Unauthorized"
    default_message = "You must be logged in to use this resource."


class Forbidden(AppError):
    """Identity proven, but not allowed to act on this resource."""

    status_code = 403
    status = "Forbidden"
    default_message = "You are not permitted to use this resource."


class NotFound(AppError):
    status_code = 404
    status = "Not Found"
    default_message = "Not Found"


class Conflict(AppError):
    status_code = 409
    status = "Conflict"
    default_message = "Unable to process request due to a conflict."


class Teapot(AppError):
    status_code = 418
    status = "I'm a Teapot"
    default_message = "The resulting entity may be short and stout."


class InternalError(AppError):
    pass


_REASONS = {
    cls.status_code: cls
    for cls in (BadRequest, Unauthorized, Forbidden, NotFound, Conflict, Teapot, InternalError)
}


def wants_html(request: Request) -> bool:
    """True when the client ranks text/html ahead of application/json."""
    accept = request.headers.get("accept", "")
    html_at = accept.find("text/html")
    if html_at < 0:
        return False
    json_at = accept.find("application/json")
    return json_at < 0 or html_at < json_at


def error_response(request: Request, error: AppError) -> Response:
    """Render an AppError for the client that asked."""
    if wants_html(request):
        from eisenhower.web.templating import templates

        return templates.TemplateResponse(
            request,
            "error.html",
            {
                "status_code": error.status_code,
                "status": error.status,
                "message": error.message,
                "request_id": getattr(request.state, "request_id", None),
            },
            status_code=error.status_code,
        )
    return JSONResponse(
        status_code=error.status_code,
        content={"status": error.status, "message": error.message},
        headers={"WWW-Authenticate": "Bearer"} if error.status_code == 401 else None,
    )


async def _app_error_handler(request: Request, exc: AppError) -> Response:
    if exc.status_code >= 500:
        logger.error("http.internal_error", path=request.url.path, error=exc.message)
    else:
        logger.info(
            "http.request_rejected",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
        )
    return error_response(request, exc)


def _describe(err: dict) -> str:
    where = ".".join(str(part) for part in err["loc"] if part != "body")
    return f"{where}: {err['msg']}" if where else err["msg"]


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    problems = "; ".join(_describe(err) for err in exc.errors())
    return error_response(request, BadRequest(problems or None))


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    cls = _REASONS.get(exc.status_code)
    if cls is None:
        error = AppError(str(exc.detail))
        error.status_code = exc.status_code
        error.status = str(exc.detail)
    elif exc.status_code == 404:
        error = NotFound(f"{request.url.path} Not Found")
    else:
        error = cls()
    return error_response(request, error)


async def _unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("http.unhandled_error", path=request.url.path)
    message = f"{type(exc).__name__}: {exc}" if settings.debug else None
    return error_response(request, InternalError(message))


def install_error_handlers(app: FastAPI) -> None:
    """Register the taxonomy handlers on an application."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
