from typing import Any, Dict, Optional

from .types import ErrorKind, HttpCategory, UniformError


class ApiClientError(Exception):
    """Base class for failures raised by the client. Carries a UniformError."""

    def __init__(self, error: UniformError):
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def status_code(self) -> Optional[int]:
        return self.error.http_status

    def to_dict(self) -> Dict[str, Any]:
        return self.error.to_dict()


class NetworkError(ApiClientError):
    """No response reached the client."""


class RequestTimeoutError(NetworkError):
    """The request exceeded its deadline."""


class HttpError(ApiClientError):
    """The backend answered with a 4xx/5xx status."""

    def __init__(self, error: UniformError, category: HttpCategory = HttpCategory.UNKNOWN):
        super().__init__(error)
        self.category = category


class AuthExpiredError(ApiClientError):
    """
    A 401 that could not be resolved by refreshing credentials.

    Raised when the refresh token is missing, the refresh call fails, or a
    replayed request is rejected again. Stored credentials have already been
    cleared in those cases; callers should route to login.

    Parked requests are also rejected with this error when the task running
    the refresh is cancelled. The refresh never completed, so credentials
    are left in place and details read "Token refresh was cancelled".
    """


class ConfigurationError(RuntimeError):
    pass
