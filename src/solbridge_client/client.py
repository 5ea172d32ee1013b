# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import logging
from typing import Any, Mapping, Optional

import httpx

from .auth_guard import AuthGuard
from .config import ClientSettings, load_settings
from .dispatcher import RequestDispatcher
from .errors import ApiClientError
from .refresh import RefreshCoordinator, SessionExpiredListener
from .retry import RetryEngine
from .storage import CredentialStore, MemoryCredentialStore
from .types import RequestEnvelope, UniformResponse

lib_logger = logging.getLogger("solbridge_client")


class ApiClient:
    """
    Authenticated client for the SolBridge backend.

    Composes the request pipeline (dispatcher, auth guard, refresh
    coordinator, retry engine) around one httpx.AsyncClient. Each instance
    has its own coordinator, so two clients never share refresh state.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        store: Optional[CredentialStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.store = store if store is not None else MemoryCredentialStore()

        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.timeout),
            transport=transport,
            follow_redirects=True,
        )

        self.dispatcher = RequestDispatcher(self._http, self.store, self.settings.timeout)
        self.coordinator = RefreshCoordinator(
            self._http, self.store, self.settings.refresh_url, self.settings.timeout
        )
        self.retry_engine = RetryEngine(self.dispatcher)
        self.guard = AuthGuard(
            self.dispatcher,
            self.coordinator,
            self.retry_engine,
            self.settings.auth_exempt_paths,
        )

    def resolve_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return self.settings.base_url.rstrip("/") + "/" + url.lstrip("/")

    def add_session_expired_listener(self, listener: SessionExpiredListener) -> None:
        """Called with the UniformError whenever a refresh cycle fails (forced logout)."""
        self.coordinator.add_session_expired_listener(listener)

    def remove_session_expired_listener(self, listener: SessionExpiredListener) -> None:
        self.coordinator.remove_session_expired_listener(listener)

    async def request(
        self,
        method: str,
        url: str,
        body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Sends one request through the auth pipeline.

        Returns the successful response. Raises an ApiClientError subclass
        (NetworkError, RequestTimeoutError, HttpError, AuthExpiredError)
        otherwise.
        """
        envelope = RequestEnvelope(
            method=method,
            url=self.resolve_url(url),
            body=body,
            params=params,
            headers=headers or {},
            timeout=timeout,
        )
        return await self.guard.handle(envelope)

    async def _uniform(self, method: str, url: str, body: Any, config: Mapping[str, Any]) -> UniformResponse:
        try:
            response = await self.request(method, url, body, **config)
        except ApiClientError as e:
            return UniformResponse.from_error(e.error)
        return UniformResponse.from_http(response)

    async def get(self, url: str, body: Any = None, **config: Any) -> UniformResponse:
        return await self._uniform("GET", url, body, config)

    async def post(self, url: str, body: Any = None, **config: Any) -> UniformResponse:
        return await self._uniform("POST", url, body, config)

    async def put(self, url: str, body: Any = None, **config: Any) -> UniformResponse:
        return await self._uniform("PUT", url, body, config)

    async def patch(self, url: str, body: Any = None, **config: Any) -> UniformResponse:
        return await self._uniform("PATCH", url, body, config)

    async def delete(self, url: str, body: Any = None, **config: Any) -> UniformResponse:
        return await self._uniform("DELETE", url, body, config)

    async def check_connection(self) -> bool:
        """Unauthenticated GET on the backend's /health endpoint."""
        url = self.settings.health_url
        try:
            response = await self._http.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            lib_logger.warning(f"Connection test to {url} failed: {e}")
            return False
        lib_logger.debug(f"Connection test to {url}: {response.status_code}")
        return response.is_success

    async def close(self) -> None:
        if not self._owns_client:
            return
        if not self._http.is_closed:
            try:
                await self._http.aclose()
            except Exception as exc:
                lib_logger.warning(f"Error closing HTTP client: {exc}")

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
