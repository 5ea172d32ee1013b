import os
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Dict, FrozenSet, Optional

from .errors import ConfigurationError


ENV_DEVELOPMENT = "development"
ENV_STAGING = "staging"
ENV_PRODUCTION = "production"

DEFAULT_API_PREFIX = "/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Per-environment backend origins, overridable with SOLBRIDGE_API_URL / SOLBRIDGE_ML_URL.
BACKEND_ORIGINS: Dict[str, Dict[str, str]] = {
    ENV_DEVELOPMENT: {
        "base": "https://sol-bridge.onrender.com",
        "ml_service": "http://localhost:8001",
    },
    ENV_STAGING: {
        "base": "https://staging-api.solarsharing.com",
        "ml_service": "https://staging-ml.solarsharing.com",
    },
    ENV_PRODUCTION: {
        "base": "https://api.solarsharing.com",
        "ml_service": "https://ml.solarsharing.com",
    },
}

ENDPOINTS = {
    "auth": {
        "register": "/auth/register",
        "login": "/auth/login",
        "verify_email": "/auth/verify-email",
        "request_password_reset": "/auth/password-reset-request",
        "reset_password": "/auth/password-reset",
        "refresh_token": "/auth/refresh-token",
    },
    "users": {
        "profile": "/users/profile",
    },
    "health": "/health",
}


class StorageKeys:
    ACCESS_TOKEN = "access_token"
    REFRESH_TOKEN = "refresh_token"
    USER_DATA = "user_data"

    # Everything removed on forced logout
    SESSION = (ACCESS_TOKEN, REFRESH_TOKEN, USER_DATA)


# The only status that drives a token refresh
REFRESH_TRIGGER_STATUS = HTTPStatus.UNAUTHORIZED


def parse_environment(raw: Optional[str]) -> str:
    value = (raw or ENV_DEVELOPMENT).strip().lower()
    if "prod" in value:
        return ENV_PRODUCTION
    if "staging" in value:
        return ENV_STAGING
    return ENV_DEVELOPMENT


def parse_timeout_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def _join_url(origin: str, prefix: str) -> str:
    origin = origin.rstrip("/")
    prefix = prefix.strip("/")
    return f"{origin}/{prefix}" if prefix else origin


@dataclass(frozen=True)
class ClientSettings:
    """Resolved connection settings for one ApiClient."""

    base_url: str
    ml_service_url: str = ""
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    environment: str = ENV_DEVELOPMENT
    login_path: str = ENDPOINTS["auth"]["login"]
    register_path: str = ENDPOINTS["auth"]["register"]
    refresh_path: str = ENDPOINTS["auth"]["refresh_token"]
    health_path: str = ENDPOINTS["health"]
    extra_exempt_paths: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if not self.base_url or not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"base_url must be an absolute http(s) URL, got {self.base_url!r}"
            )
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

    @property
    def refresh_url(self) -> str:
        return self.base_url.rstrip("/") + self.refresh_path

    @property
    def origin(self) -> str:
        """The backend origin without the API prefix (used for /health)."""
        base = self.base_url.rstrip("/")
        if base.endswith(DEFAULT_API_PREFIX):
            return base[: -len(DEFAULT_API_PREFIX)]
        return base

    @property
    def health_url(self) -> str:
        return self.origin + self.health_path

    @property
    def auth_exempt_paths(self) -> FrozenSet[str]:
        return frozenset(
            {self.login_path, self.register_path, self.refresh_path}
            | set(self.extra_exempt_paths)
        )


def load_settings() -> ClientSettings:
    """Builds ClientSettings from SOLBRIDGE_* environment variables."""
    environment = parse_environment(os.getenv("SOLBRIDGE_ENV"))
    origins = BACKEND_ORIGINS[environment]

    api_origin = (os.getenv("SOLBRIDGE_API_URL") or "").strip() or origins["base"]
    ml_origin = (os.getenv("SOLBRIDGE_ML_URL") or "").strip() or origins["ml_service"]
    prefix = os.getenv("SOLBRIDGE_API_PREFIX", DEFAULT_API_PREFIX)

    return ClientSettings(
        base_url=_join_url(api_origin, prefix),
        ml_service_url=_join_url(ml_origin, prefix),
        timeout=parse_timeout_env("SOLBRIDGE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        environment=environment,
    )


def get_credentials_file() -> str:
    return (
        os.getenv("SOLBRIDGE_CREDENTIALS_FILE") or ""
    ).strip() or os.path.join(os.path.expanduser("~"), ".solbridge", "credentials.json")
