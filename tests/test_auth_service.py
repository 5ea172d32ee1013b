import json

import httpx
import pytest
import pytest_asyncio

from solbridge_client.auth_service import AuthService, build_register_payload
from solbridge_client.client import ApiClient
from solbridge_client.config import StorageKeys
from solbridge_client.errors import AuthExpiredError
from solbridge_client.storage import MemoryCredentialStore


def auth_payload(access="tok_new", refresh="r2"):
    return {
        "success": True,
        "statusCode": 200,
        "message": "ok",
        "data": {
            "accessToken": access,
            "refreshToken": refresh,
            "user": {"id": "u1", "email": "alice@example.com", "role": "seller"},
        },
    }


@pytest.fixture
def empty_store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest_asyncio.fixture
async def auth(settings, empty_store, backend):
    client = ApiClient(
        settings=settings, store=empty_store, transport=httpx.MockTransport(backend.handler)
    )
    try:
        yield AuthService(client)
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_login_stores_session(auth, backend, empty_store) -> None:
    received = []

    def login(request):
        received.append(json.loads(request.content))
        return httpx.Response(200, json=auth_payload())

    backend.routes["/api/v1/auth/login"] = login

    response = await auth.login("alice@example.com", "secret")

    assert response.success is True
    assert received == [{"email": "alice@example.com", "password": "secret"}]
    assert await auth.is_authenticated() is True
    assert await auth.get_access_token() == "tok_new"
    assert await empty_store.get(StorageKeys.REFRESH_TOKEN) == "r2"
    assert (await auth.get_stored_user())["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_bad_login_does_not_refresh_or_store(auth, backend, empty_store) -> None:
    backend.routes["/api/v1/auth/login"] = lambda request: httpx.Response(
        401, json={"success": False, "message": "Invalid email or password"}
    )

    response = await auth.login("alice@example.com", "wrong")

    assert response.success is False
    assert response.message == "Invalid email or password"
    assert empty_store.snapshot() == {}
    assert auth.client.coordinator.refresh_count == 0


@pytest.mark.asyncio
async def test_incomplete_auth_response_is_not_stored(auth, backend, empty_store) -> None:
    backend.routes["/api/v1/auth/login"] = lambda request: httpx.Response(
        200, json=auth_payload(refresh=None)
    )

    await auth.login("alice@example.com", "secret")

    assert empty_store.snapshot() == {}


def test_register_payload_mapping() -> None:
    payload = build_register_payload(
        {
            "email": "bob@example.com",
            "password": "pw",
            "fullName": "Bob Solar",
            "phone": "+91 90000 00000",
            "role": "buyer",
            "address": "1 Sun St",
            "city": "Pune",
            "state": "MH",
            "pincode": "411001",
        }
    )

    assert payload["full_name"] == "Bob Solar"
    assert payload["profile"] == {
        "address": "1 Sun St",
        "city": "Pune",
        "state": "MH",
        "pincode": "411001",
    }
    assert "fullName" not in payload


@pytest.mark.asyncio
async def test_register_stores_session(auth, backend, empty_store) -> None:
    backend.routes["/api/v1/auth/register"] = lambda request: httpx.Response(
        201, json=auth_payload(access="tok_reg", refresh="r_reg")
    )

    response = await auth.register({"email": "bob@example.com", "password": "pw"})

    assert response.success is True
    assert await empty_store.get(StorageKeys.ACCESS_TOKEN) == "tok_reg"


@pytest.mark.asyncio
async def test_logout_clears_everything(auth, empty_store) -> None:
    await empty_store.set_many(
        {
            StorageKeys.ACCESS_TOKEN: "tok",
            StorageKeys.REFRESH_TOKEN: "r1",
            StorageKeys.USER_DATA: "{}",
        }
    )

    await auth.logout()

    assert empty_store.snapshot() == {}
    assert await auth.get_stored_user() is None


@pytest.mark.asyncio
async def test_explicit_refresh_goes_through_coordinator(auth, backend, empty_store) -> None:
    await empty_store.set(StorageKeys.REFRESH_TOKEN, "r1")

    assert await auth.refresh_token() == "tok_new"
    assert backend.refresh_calls == ["r1"]
    assert auth.client.coordinator.refresh_count == 1


@pytest.mark.asyncio
async def test_explicit_refresh_without_token_raises(auth, backend) -> None:
    with pytest.raises(AuthExpiredError):
        await auth.refresh_token()
    assert backend.refresh_calls == []


@pytest.mark.asyncio
async def test_update_profile_recaches_user(auth, backend, empty_store) -> None:
    await empty_store.set(StorageKeys.ACCESS_TOKEN, "tok_new")
    backend.routes["/api/v1/users/profile"] = lambda request: httpx.Response(
        200, json={"success": True, "data": json.loads(request.content)}
    )

    response = await auth.update_profile({"email": "new@example.com"})

    assert response.success is True
    assert await auth.get_stored_user() == {"email": "new@example.com"}


@pytest.mark.asyncio
async def test_corrupt_cached_user_reads_as_none(auth, empty_store) -> None:
    await empty_store.set(StorageKeys.USER_DATA, "{oops")
    assert await auth.get_stored_user() is None
