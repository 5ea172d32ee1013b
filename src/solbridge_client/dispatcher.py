import logging
from typing import Dict, Optional

import httpx

from .config import StorageKeys
from .storage import CredentialStore
from .types import RequestEnvelope


lib_logger = logging.getLogger("solbridge_client")


DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class RequestDispatcher:
    """
    Issues exactly one HTTP call per envelope.

    The access token is read from the credential store right before each
    send, never cached. Any HTTP status comes back as a response; only a
    missing response (connect failure, timeout) raises httpx.TransportError.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        store: CredentialStore,
        default_timeout: Optional[float] = None,
    ) -> None:
        self._http = http_client
        self._store = store
        self._default_timeout = default_timeout

    async def _build_headers(self, envelope: RequestEnvelope) -> Dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers.update(envelope.headers)
        if not envelope.has_authorization:
            token = await self._store.get(StorageKeys.ACCESS_TOKEN)
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def send(self, envelope: RequestEnvelope) -> httpx.Response:
        headers = await self._build_headers(envelope)
        timeout = envelope.timeout if envelope.timeout is not None else self._default_timeout

        kwargs = {"headers": headers, "params": envelope.params}
        if envelope.body is not None:
            kwargs["json"] = envelope.body
        if timeout is not None:
            kwargs["timeout"] = timeout

        lib_logger.debug(
            f"{envelope.method} {envelope.url} "
            f"(auth: {'Authorization' in headers}, retried: {envelope.retried})"
        )
        response = await self._http.request(envelope.method, envelope.url, **kwargs)
        lib_logger.debug(f"{envelope.method} {envelope.url} -> {response.status_code}")
        return response
