# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Type definitions for the SolBridge API client.

This module contains the dataclasses and enums shared by the dispatcher,
auth guard, refresh coordinator and the public request surface.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import httpx


# =============================================================================
# ENUMS
# =============================================================================


class RefreshState(str, Enum):
    """Lifecycle of the refresh coordinator."""

    IDLE = "idle"
    REFRESHING = "refreshing"


class ErrorKind(str, Enum):
    """Top-level failure taxonomy surfaced to callers."""

    NETWORK = "NetworkError"  # No response reached
    TIMEOUT = "TimeoutError"  # Request exceeded its deadline
    HTTP = "HttpError"  # 4xx/5xx with a response
    AUTH_EXPIRED = "AuthExpiredError"  # 401 that refresh could not resolve


class HttpCategory(str, Enum):
    """Human-facing buckets for HTTP status codes."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


class GuardDecision(str, Enum):
    """Outcome of the auth guard's inspection of a failed response."""

    PASS_THROUGH = "pass_through"
    NEEDS_REFRESH = "needs_refresh"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# CREDENTIALS
# =============================================================================


@dataclass(frozen=True)
class CredentialPair:
    """Access/refresh token pair as held by the credential store."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.access_token) and bool(self.refresh_token)


# =============================================================================
# REQUESTS
# =============================================================================


@dataclass(frozen=True)
class RequestEnvelope:
    """
    One outbound call, as issued by a caller.

    Envelopes are immutable. A replay after a token refresh is a new
    envelope produced by as_retry(), with retried set; the original is
    never touched.
    """

    method: str
    url: str
    body: Any = None
    params: Optional[Mapping[str, Any]] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    retried: bool = False

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", dict(self.headers or {}))

    @property
    def has_authorization(self) -> bool:
        return any(name.lower() == "authorization" for name in self.headers)

    def with_bearer(self, token: str) -> "RequestEnvelope":
        """Copy of this envelope whose Authorization header carries token."""
        headers = {
            name: value
            for name, value in self.headers.items()
            if name.lower() != "authorization"
        }
        headers["Authorization"] = f"Bearer {token}"
        return replace(self, headers=headers)

    def as_retry(self, token: str) -> "RequestEnvelope":
        return replace(self.with_bearer(token), retried=True)


# =============================================================================
# ERRORS AND RESPONSES
# =============================================================================


@dataclass(frozen=True)
class UniformError:
    """Normalized failure shape handed to every caller."""

    kind: ErrorKind
    message: str
    http_status: Optional[int] = None
    details: Any = None
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "httpStatus": self.http_status,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


@dataclass
class UniformResponse:
    """
    Envelope returned by the generic request surface.

    Mirrors the backend's own response body (success, data, message,
    statusCode) so domain wrappers see a single shape for both successes
    and failures.
    """

    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    details: Any = None
    timestamp: Optional[str] = None

    @classmethod
    def from_error(cls, error: UniformError) -> "UniformResponse":
        return cls(
            success=False,
            message=error.message,
            error=error.kind.value,
            status_code=error.http_status,
            details=error.details,
            timestamp=error.timestamp,
        )

    @classmethod
    def from_http(cls, response: httpx.Response) -> "UniformResponse":
        """Adopt the backend envelope if the body has one, else wrap the body."""
        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = response.text

        if isinstance(payload, dict) and "success" in payload:
            return cls(
                success=bool(payload.get("success")),
                data=payload.get("data"),
                message=payload.get("message"),
                error=payload.get("error"),
                status_code=payload.get("statusCode", response.status_code),
                details=payload.get("details"),
                timestamp=payload.get("timestamp"),
            )

        return cls(success=True, data=payload, status_code=response.status_code)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        for key, value in (
            ("data", self.data),
            ("message", self.message),
            ("error", self.error),
            ("statusCode", self.status_code),
            ("details", self.details),
            ("timestamp", self.timestamp),
        ):
            if value is not None:
                result[key] = value
        return result
