"""
Error responses shared by every router.

Every non-2xx response carries the body ``{"error": str, "code"?: str, "details"?: any}``.
"""
from typing import Any, Optional
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from photofeed.config import settings
from photofeed.schemas.error_schema import ErrorResponse

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGES = {
    400: "Bad request.",
    401: "Authentication required.",
    403: "You don't have permission to do that.",
    404: "The requested resource was not found.",
    409: "The request has already been processed.",
    500: "Internal server error.",
    502: "The server is temporarily unavailable.",
    503: "The service is temporarily unavailable.",
    504: "The request timed out.",
}

STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
}


class ApiError(HTTPException):
    """HTTPException that also carries a machine readable code and optional details"""

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Any = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(
            status_code=status_code,
            detail=message or DEFAULT_ERROR_MESSAGES.get(status_code, "Unknown error."),
            headers=headers,
        )
        self.code = code or code_for_status(status_code)
        self.details = details


def code_for_status(status_code: int) -> Optional[str]:
    if status_code >= 500:
        return "SERVER_ERROR"
    return STATUS_CODES.get(status_code)


def bad_request(message: str = DEFAULT_ERROR_MESSAGES[400]) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, message, "BAD_REQUEST")


def unauthorized(message: str = DEFAULT_ERROR_MESSAGES[401]) -> ApiError:
    return ApiError(
        status.HTTP_401_UNAUTHORIZED,
        message,
        "UNAUTHORIZED",
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden(message: str = DEFAULT_ERROR_MESSAGES[403]) -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, message, "FORBIDDEN")


def not_found(message: str = DEFAULT_ERROR_MESSAGES[404]) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, message, "NOT_FOUND")


def conflict(message: str = DEFAULT_ERROR_MESSAGES[409]) -> ApiError:
    return ApiError(status.HTTP_409_CONFLICT, message, "CONFLICT")


def server_error(message: str = DEFAULT_ERROR_MESSAGES[500], error: Optional[BaseException] = None) -> ApiError:
    # Internals only leave the process in development
    details = repr(error) if error is not None and settings.is_development else None
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, message, "SERVER_ERROR", details)


def error_body(message: str, code: Optional[str] = None, details: Any = None) -> dict:
    return ErrorResponse(error=message, code=code, details=details).model_dump(exclude_none=True)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = getattr(exc, "code", None) or code_for_status(exc.status_code)
    details = getattr(exc, "details", None)
    message = exc.detail if isinstance(exc.detail, str) else DEFAULT_ERROR_MESSAGES.get(exc.status_code, "Unknown error.")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code, details),
        headers=getattr(exc, "headers", None),
    )


def _validation_message(error: dict) -> str:
    field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form"))
    if error.get("type") == "missing":
        return f"{field} is required" if field else DEFAULT_ERROR_MESSAGES[400]
    message = str(error.get("msg", DEFAULT_ERROR_MESSAGES[400]))
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    return f"{field}: {message}" if field else message


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = _validation_message(errors[0]) if errors else DEFAULT_ERROR_MESSAGES[400]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, "BAD_REQUEST"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = server_error(error=exc)
    return JSONResponse(
        status_code=error.status_code,
        content=error_body(error.detail, error.code, error.details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
