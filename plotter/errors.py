"""
Error taxonomy and HTTP mapping.

Services raise these exceptions; the handlers registered on the app turn
them into the JSON error bodies the clients expect. Anything else is an
internal error: it is logged with the request's correlation id and the
caller only sees a generic message.
"""
import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PlotterError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal server error"

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class EntryValidationError(PlotterError):
    """Malformed command or query. Never partially applied."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "EntryValidationError":
        return cls(message, details={field: message})

    def to_dict(self) -> dict:
        return {"error": self.error, "details": self.details or {"request": self.message}}


class NotFoundError(PlotterError):
    """Series or starting balance does not exist for this user."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"


class ConflictError(PlotterError):
    """Scope date outside the series range, or a split that would invert it."""

    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def format_validation_errors(exc: RequestValidationError) -> Dict[str, str]:
    """Flatten pydantic errors into {"field.path": "message"}."""
    details: Dict[str, str] = {}
    for err in exc.errors():
        # Drop the "body"/"query" location prefix
        loc = [str(part) for part in err.get("loc", ())[1:]]
        # Cross-field validators name the field they blame
        cause = (err.get("ctx") or {}).get("error")
        blamed = getattr(cause, "field", None)
        if blamed:
            loc.append(blamed)
        field = ".".join(loc) or "request"
        details[field] = str(cause) if blamed else err.get("msg", "Invalid value")
    return details


async def plotter_error_handler(request: Request, exc: PlotterError) -> JSONResponse:
    logger.warning(
        f"[{_request_id(request)}] {exc.__class__.__name__} on "
        f"{request.method} {request.url.path}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = format_validation_errors(exc)
    logger.info(f"[{_request_id(request)}] Request validation failed: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": EntryValidationError.error, "details": details},
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = _request_id(request)
    logger.exception(f"[{request_id}] Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request_id,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error taxonomy to a FastAPI app."""
    app.add_exception_handler(PlotterError, plotter_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
