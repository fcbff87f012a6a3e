"""Error types and the consistent error body used across every response.

Every failed request answers with a JSON list of ``{"msg": "..."}`` objects,
whatever raised: a guard, a service, request parsing or model validation.
"""
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.core.logging import get_logger

logger = get_logger(__name__)

FALLBACK_MESSAGE = "Request failed"


class HttpError(Exception):
    """Exception carrying the HTTP status it should be answered with.

    Services and guards raise it so the route handlers never need to
    translate errors themselves.

    Example:
        >>> raise HttpError("Product does not exist", status.HTTP_404_NOT_FOUND)
    """

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"HttpError({self.message!r}, {self.status_code})"


def _validation_message(error: Dict[str, Any]) -> str:
    """Return the message a validator raised, without pydantic's prefix."""
    ctx = error.get("ctx") or {}
    if isinstance(ctx.get("error"), Exception):
        return str(ctx["error"])

    message = error.get("msg") or FALLBACK_MESSAGE
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    return message


def map_errors(err: Any) -> List[Dict[str, str]]:
    """Transform any error into the ``[{"msg": ...}]`` response format.

    Lists pass through untouched, validation errors produce one entry per
    failing field, other exceptions use their message.
    """
    if isinstance(err, list):
        return err

    if isinstance(err, (ValidationError, RequestValidationError)):
        return [{"msg": _validation_message(e)} for e in err.errors()]

    if isinstance(err, HttpError):
        return [{"msg": err.message}]

    if isinstance(err, Exception) and str(err):
        return [{"msg": str(err)}]

    return [{"msg": FALLBACK_MESSAGE}]


async def http_error_handler(request: Request, exc: HttpError) -> JSONResponse:
    """Answer with the status the HttpError carries."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(
            f"{request.method} {request.url.path} rejected: {exc.message}",
            extra={"status_code": exc.status_code, "path": request.url.path},
        )
    return JSONResponse(status_code=exc.status_code, content=map_errors(exc))


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer request and model validation failures with 400."""
    errors = map_errors(exc)
    logger.info(
        f"{request.method} {request.url.path} invalid: {'; '.join(e['msg'] for e in errors)}",
        extra={"status_code": status.HTTP_400_BAD_REQUEST, "path": request.url.path},
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=errors)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the error handlers with the FastAPI application."""
    app.add_exception_handler(HttpError, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    logger.debug("Exception handlers registered")
