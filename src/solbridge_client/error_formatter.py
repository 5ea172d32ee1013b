# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Normalizes every failure shape (transport errors, timeouts, HTTP statuses)
into a UniformError, and turns UniformErrors back into typed exceptions.
"""

from http import HTTPStatus
from typing import Any, Optional, Tuple

import httpx

from .errors import (
    ApiClientError,
    AuthExpiredError,
    HttpError,
    NetworkError,
    RequestTimeoutError,
)
from .types import ErrorKind, HttpCategory, UniformError


NETWORK_MESSAGE = "Network error. Please check your internet connection."
TIMEOUT_MESSAGE = "Request timeout. Please check your connection."
SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
GENERIC_MESSAGE = "Something went wrong. Please try again."

_STATUS_CATEGORIES = {
    HTTPStatus.BAD_REQUEST: HttpCategory.BAD_REQUEST,
    HTTPStatus.UNAUTHORIZED: HttpCategory.UNAUTHORIZED,
    HTTPStatus.FORBIDDEN: HttpCategory.FORBIDDEN,
    HTTPStatus.NOT_FOUND: HttpCategory.NOT_FOUND,
    HTTPStatus.CONFLICT: HttpCategory.CONFLICT,
    HTTPStatus.TOO_MANY_REQUESTS: HttpCategory.RATE_LIMITED,
}

CATEGORY_MESSAGES = {
    HttpCategory.BAD_REQUEST: "Invalid request. Please check your input.",
    HttpCategory.UNAUTHORIZED: SESSION_EXPIRED_MESSAGE,
    HttpCategory.FORBIDDEN: "Access denied.",
    HttpCategory.NOT_FOUND: "Resource not found.",
    HttpCategory.CONFLICT: "Resource already exists.",
    HttpCategory.RATE_LIMITED: "Too many requests. Please wait a moment.",
    HttpCategory.SERVER_ERROR: GENERIC_MESSAGE,
    HttpCategory.UNKNOWN: GENERIC_MESSAGE,
}


def categorize_status(status_code: int) -> HttpCategory:
    """Maps an HTTP status code onto one of the fixed categories."""
    if status_code >= 500:
        return HttpCategory.SERVER_ERROR
    try:
        return _STATUS_CATEGORIES.get(HTTPStatus(status_code), HttpCategory.UNKNOWN)
    except ValueError:
        return HttpCategory.UNKNOWN


def _backend_error_fields(response: httpx.Response) -> Tuple[Optional[str], Any]:
    """Pulls message/details out of the backend's JSON error body, if any."""
    try:
        payload = response.json()
    except ValueError:
        return None, None
    if not isinstance(payload, dict):
        return None, None
    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        message = None
    return message, payload.get("details")


def format_response_error(
    response: httpx.Response, kind: ErrorKind = ErrorKind.HTTP
) -> UniformError:
    category = categorize_status(response.status_code)
    message, details = _backend_error_fields(response)
    return UniformError(
        kind=kind,
        message=message or CATEGORY_MESSAGES[category],
        http_status=response.status_code,
        details=details,
    )


def format_error(raw: Any) -> UniformError:
    """
    Converts any failure into a UniformError. Side-effect free.

    Args:
        raw: An httpx.Response with a failing status, an httpx exception,
            an ApiClientError, or any other exception.

    Returns:
        A freshly timestamped UniformError.
    """
    if isinstance(raw, ApiClientError):
        return raw.error
    if isinstance(raw, httpx.Response):
        return format_response_error(raw)
    if isinstance(raw, httpx.HTTPStatusError):
        return format_response_error(raw.response)
    if isinstance(raw, httpx.TimeoutException):
        return UniformError(kind=ErrorKind.TIMEOUT, message=TIMEOUT_MESSAGE)
    if isinstance(raw, httpx.TransportError):
        return UniformError(
            kind=ErrorKind.NETWORK, message=NETWORK_MESSAGE, details=str(raw) or None
        )
    return UniformError(
        kind=ErrorKind.NETWORK,
        message=NETWORK_MESSAGE,
        details=f"{type(raw).__name__}: {raw}",
    )


def auth_expired_error(
    message: str = SESSION_EXPIRED_MESSAGE, details: Any = None
) -> AuthExpiredError:
    return AuthExpiredError(
        UniformError(
            kind=ErrorKind.AUTH_EXPIRED,
            message=message,
            http_status=HTTPStatus.UNAUTHORIZED.value,
            details=details,
        )
    )


def to_exception(error: UniformError) -> ApiClientError:
    """Wraps a UniformError in the exception class matching its kind."""
    if error.kind is ErrorKind.TIMEOUT:
        return RequestTimeoutError(error)
    if error.kind is ErrorKind.NETWORK:
        return NetworkError(error)
    if error.kind is ErrorKind.AUTH_EXPIRED:
        return AuthExpiredError(error)
    category = (
        categorize_status(error.http_status)
        if error.http_status is not None
        else HttpCategory.UNKNOWN
    )
    return HttpError(error, category)
