import asyncio
import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple

import httpx
import pytest
import pytest_asyncio


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from solbridge_client.client import ApiClient
from solbridge_client.config import ClientSettings, StorageKeys
from solbridge_client.storage import MemoryCredentialStore


BASE_URL = "https://api.test/api/v1"
REFRESH_PATH = "/api/v1/auth/refresh-token"


class FakeBackend:
    """
    In-process SolBridge backend served through httpx.MockTransport.

    Any path answers 200 when the bearer token is in valid_tokens and 401
    otherwise, unless overridden in routes. The refresh endpoint exchanges
    the refresh tokens in refresh_grants and can be held on refresh_gate.
    """

    def __init__(self) -> None:
        self.valid_tokens: Set[str] = {"tok_new"}
        self.refresh_grants: Dict[str, Tuple[str, str]] = {"r1": ("tok_new", "r2")}
        self.refresh_status = 200
        self.refresh_body: Optional[object] = None
        self.wrap_refresh_in_envelope = False
        self.refresh_gate: Optional[asyncio.Event] = None
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}

        self.requests: List[Tuple[str, str, Optional[str]]] = []
        self.refresh_calls: List[Optional[str]] = []

    def calls_to(self, path: str) -> List[Optional[str]]:
        """Authorization headers seen on each call to path, in order."""
        return [auth for _, p, auth in self.requests if p == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        auth = request.headers.get("Authorization")
        self.requests.append((request.method, path, auth))

        if path in self.routes:
            return self.routes[path](request)

        if path == REFRESH_PATH:
            return await self._refresh(request)

        token = auth[len("Bearer "):] if auth and auth.startswith("Bearer ") else None
        if token in self.valid_tokens:
            return httpx.Response(
                200, json={"success": True, "statusCode": 200, "data": {"path": path}}
            )
        return httpx.Response(
            401, json={"success": False, "statusCode": 401, "error": "Unauthorized"}
        )

    async def _refresh(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        refresh_token = body.get("refreshToken")
        self.refresh_calls.append(refresh_token)

        if self.refresh_gate is not None:
            await self.refresh_gate.wait()

        if self.refresh_body is not None:
            return httpx.Response(self.refresh_status, json=self.refresh_body)
        if self.refresh_status != 200 or refresh_token not in self.refresh_grants:
            return httpx.Response(
                self.refresh_status if self.refresh_status != 200 else 401,
                json={"success": False, "message": "Invalid refresh token"},
            )

        access, new_refresh = self.refresh_grants[refresh_token]
        tokens = {"accessToken": access, "refreshToken": new_refresh}
        if self.wrap_refresh_in_envelope:
            tokens = {"success": True, "statusCode": 200, "data": tokens}
        return httpx.Response(200, json=tokens)


async def wait_until(predicate: Callable[[], bool], attempts: int = 500) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(base_url=BASE_URL, timeout=5.0)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def store() -> MemoryCredentialStore:
    return MemoryCredentialStore(
        {
            StorageKeys.ACCESS_TOKEN: "tok_old",
            StorageKeys.REFRESH_TOKEN: "r1",
            StorageKeys.USER_DATA: '{"email": "alice@example.com"}',
        }
    )


@pytest_asyncio.fixture
async def client(settings, store, backend) -> ApiClient:
    api = ApiClient(settings=settings, store=store, transport=httpx.MockTransport(backend.handler))
    try:
        yield api
    finally:
        await api.close()
