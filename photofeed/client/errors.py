"""
Client-side error classification.

Every failure the client sees (an HTTP error response, a transport failure,
a malformed body) is turned into an ``ErrorInfo`` and raised as
``ApiClientError``, so callers handle exactly one exception type.
"""
from enum import Enum
from typing import Any, Optional
import logging

import httpx
from pydantic import BaseModel, ConfigDict

from photofeed.config import settings

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


DEFAULT_MESSAGES = {
    ErrorKind.BAD_REQUEST: "The request was invalid. Please check what you entered.",
    ErrorKind.UNAUTHORIZED: "You need to sign in.",
    ErrorKind.FORBIDDEN: "You don't have permission to do that.",
    ErrorKind.NOT_FOUND: "The requested resource could not be found.",
    ErrorKind.CONFLICT: "This request has already been processed.",
    ErrorKind.SERVER_ERROR: "Something went wrong on the server. Please try again shortly.",
    ErrorKind.NETWORK_ERROR: "There is a problem with the network connection. Please check your connection.",
    ErrorKind.UNKNOWN_ERROR: "An unknown error occurred. Please try again shortly.",
}

_STATUS_KINDS = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
}


class ErrorInfo(BaseModel):
    """What went wrong, phrased for the user"""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    cause: Optional[BaseException] = None


class ApiClientError(Exception):
    def __init__(self, info: ErrorInfo):
        super().__init__(info.message)
        self.info = info

    @property
    def kind(self) -> ErrorKind:
        return self.info.kind


def kind_from_status(status_code: int) -> ErrorKind:
    if 500 <= status_code <= 599:
        return ErrorKind.SERVER_ERROR
    return _STATUS_KINDS.get(status_code, ErrorKind.UNKNOWN_ERROR)


def _body_message(response: httpx.Response) -> Optional[str]:
    try:
        body: Any = response.json()
    except ValueError:
        return None

    if isinstance(body, dict):
        message = body.get("error")
        if isinstance(message, str) and message:
            return message
    return None


def classify_response(response: httpx.Response, cause: Optional[BaseException] = None) -> ErrorInfo:
    """Describe a non-2xx response, preferring the server's own ``error`` message"""
    kind = kind_from_status(response.status_code)
    return ErrorInfo(
        kind=kind,
        message=_body_message(response) or DEFAULT_MESSAGES[kind],
        status_code=response.status_code,
        cause=cause,
    )


def classify_exception(exc: BaseException) -> ErrorInfo:
    if isinstance(exc, ApiClientError):
        return exc.info
    if isinstance(exc, httpx.TransportError):
        kind = ErrorKind.NETWORK_ERROR
    else:
        kind = ErrorKind.UNKNOWN_ERROR
    return ErrorInfo(kind=kind, message=DEFAULT_MESSAGES[kind], cause=exc)


def log_error(info: ErrorInfo, context: Optional[str] = None) -> None:
    label = f"{info.kind.value} - {context}" if context else info.kind.value

    if settings.is_development:
        logger.error(
            f"[{label}] {info.message} (status={info.status_code}, cause={info.cause!r})"
        )
    else:
        logger.error(f"[{info.kind.value}] {info.message}")
