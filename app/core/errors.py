"""
app/core/errors.py

Purpose: Error normalization

- Classifies any caught failure into an ErrorKind
- Maps each kind to one HTTP status and a client-safe message
- Registers the FastAPI exception handlers that emit
  {"success": false, "message": ...}
"""

from dataclasses import dataclass

import jwt
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AccountsError, ErrorKind
from app.core.logging import get_logger
from app.schemas.response import ErrorResponse

logger = get_logger(__name__)

DEFAULT_MESSAGE = "Internal Server Error"

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_ID: 400,
    ErrorKind.DUPLICATE_KEY: 400,
    ErrorKind.TOKEN_INVALID: 400,
    ErrorKind.TOKEN_EXPIRED: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM: 500,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class NormalizedError:
    status_code: int
    message: str
    kind: ErrorKind


def classify(exc: BaseException) -> ErrorKind:
    """
    Returns the ErrorKind of a failure, including raw library errors
    that escaped the layer that should have translated them.
    """
    if isinstance(exc, AccountsError):
        return exc.kind
    if isinstance(exc, InvalidId):
        return ErrorKind.INVALID_ID
    if isinstance(exc, MongoDuplicateKeyError):
        return ErrorKind.DUPLICATE_KEY
    # ExpiredSignatureError subclasses InvalidTokenError
    if isinstance(exc, jwt.ExpiredSignatureError):
        return ErrorKind.TOKEN_EXPIRED
    if isinstance(exc, jwt.InvalidTokenError):
        return ErrorKind.TOKEN_INVALID
    if isinstance(exc, RequestValidationError):
        return ErrorKind.VALIDATION
    if isinstance(exc, StarletteHTTPException):
        return _kind_for_status(exc.status_code)
    return ErrorKind.INTERNAL


def _kind_for_status(status_code: int) -> ErrorKind:
    if status_code == 401:
        return ErrorKind.AUTHENTICATION
    if status_code == 403:
        return ErrorKind.FORBIDDEN
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if 400 <= status_code < 500:
        return ErrorKind.VALIDATION
    return ErrorKind.INTERNAL


def duplicate_fields(exc: MongoDuplicateKeyError) -> str:
    """Names the keys that collided, e.g. "email"."""
    details = exc.details or {}
    key_value = details.get("keyValue") or details.get("keyPattern") or {}
    if key_value:
        return ", ".join(key_value.keys())
    return "key"


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Input validation failed"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    if location:
        return f"{'.'.join(location)}: {first.get('msg')}"
    return str(first.get("msg"))


def normalize_error(exc: BaseException, expose_internal: bool = True) -> NormalizedError:
    """
    Rewrites a caught failure into a (status, message) pair.

    Args:
        exc: Any exception raised while handling a request
        expose_internal: Whether unclassified errors keep their own message

    Returns:
        NormalizedError ready to be serialized
    """
    kind = classify(exc)

    if kind is ErrorKind.INVALID_ID:
        field = getattr(exc, "field", None) or "_id"
        return NormalizedError(400, f"Resource not found. Invalid: {field}", kind)

    if kind is ErrorKind.DUPLICATE_KEY:
        if isinstance(exc, MongoDuplicateKeyError):
            field = duplicate_fields(exc)
        else:
            field = getattr(exc, "field", None) or "key"
        return NormalizedError(400, f"Duplicate {field} Entered", kind)

    if kind is ErrorKind.TOKEN_INVALID:
        return NormalizedError(400, "Token is invalid, try again", kind)

    if kind is ErrorKind.TOKEN_EXPIRED:
        return NormalizedError(400, "Token is expired, try again", kind)

    if isinstance(exc, RequestValidationError):
        return NormalizedError(STATUS_BY_KIND[kind], _validation_message(exc), kind)

    if isinstance(exc, StarletteHTTPException):
        return NormalizedError(exc.status_code, str(exc.detail or DEFAULT_MESSAGE), kind)

    if isinstance(exc, AccountsError):
        return NormalizedError(STATUS_BY_KIND[kind], exc.message or DEFAULT_MESSAGE, kind)

    message = str(exc) if expose_internal and str(exc) else DEFAULT_MESSAGE
    return NormalizedError(STATUS_BY_KIND[kind], message, kind)


def error_response(normalized: NormalizedError) -> JSONResponse:
    return JSONResponse(
        status_code=normalized.status_code,
        content=ErrorResponse(message=normalized.message).model_dump()
    )


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    async def handle_known_error(request: Request, exc: Exception):
        normalized = normalize_error(exc)
        if normalized.status_code >= 500:
            logger.error(
                f"Request failed: {normalized.message}",
                extra={"route": request.url.path},
                exc_info=exc
            )
        else:
            logger.info(
                f"Request rejected ({normalized.status_code}): {normalized.message}",
                extra={"route": request.url.path}
            )
        return error_response(normalized)

    for exc_class in (
        AccountsError,
        StarletteHTTPException,
        RequestValidationError,
        MongoDuplicateKeyError,
        InvalidId,
        jwt.PyJWTError,
    ):
        app.add_exception_handler(exc_class, handle_known_error)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "route": request.url.path,
                "client": request.client.host if request.client else "unknown"
            },
            exc_info=exc
        )

        settings = request.app.state.settings
        return error_response(normalize_error(exc, expose_internal=not settings.is_production))
