from .auth_service import AuthService
from .client import ApiClient
from .config import ClientSettings, StorageKeys, load_settings
from .error_formatter import categorize_status, format_error
from .errors import (
    ApiClientError,
    AuthExpiredError,
    ConfigurationError,
    HttpError,
    NetworkError,
    RequestTimeoutError,
)
from .refresh import RefreshCoordinator
from .storage import CredentialStore, JsonFileCredentialStore, MemoryCredentialStore
from .types import (
    CredentialPair,
    ErrorKind,
    HttpCategory,
    RefreshState,
    RequestEnvelope,
    UniformError,
    UniformResponse,
)

__all__ = [
    "ApiClient",
    "AuthService",
    "ClientSettings",
    "StorageKeys",
    "load_settings",
    "RefreshCoordinator",
    # Storage
    "CredentialStore",
    "JsonFileCredentialStore",
    "MemoryCredentialStore",
    # Types
    "CredentialPair",
    "ErrorKind",
    "HttpCategory",
    "RefreshState",
    "RequestEnvelope",
    "UniformError",
    "UniformResponse",
    # Errors
    "ApiClientError",
    "AuthExpiredError",
    "ConfigurationError",
    "HttpError",
    "NetworkError",
    "RequestTimeoutError",
    "categorize_status",
    "format_error",
]
