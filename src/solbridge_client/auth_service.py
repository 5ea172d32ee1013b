"""
Session management on top of ApiClient: login, registration, logout and
the locally cached user.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from .client import ApiClient
from .config import ENDPOINTS, StorageKeys
from .types import UniformResponse

lib_logger = logging.getLogger("solbridge_client")


REGISTER_PROFILE_FIELDS = ("address", "city", "state", "pincode")


def build_register_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Maps the client-side registration form onto the backend's schema."""
    return {
        "email": data.get("email"),
        "password": data.get("password"),
        "full_name": data.get("fullName"),
        "phone": data.get("phone"),
        "role": data.get("role"),
        "profile": {field: data.get(field) for field in REGISTER_PROFILE_FIELDS},
    }


class AuthService:
    def __init__(self, client: ApiClient) -> None:
        self.client = client
        self.store = client.store

    async def _store_session(self, response: UniformResponse) -> None:
        data = response.data if isinstance(response.data, dict) else {}
        access_token = data.get("accessToken")
        refresh_token = data.get("refreshToken")

        if not access_token or not refresh_token:
            lib_logger.error("Auth response is missing accessToken or refreshToken; session not stored")
            return

        values = {
            StorageKeys.ACCESS_TOKEN: access_token,
            StorageKeys.REFRESH_TOKEN: refresh_token,
        }
        if data.get("user") is not None:
            values[StorageKeys.USER_DATA] = json.dumps(data["user"])
        await self.store.set_many(values)

    async def login(self, email: str, password: str) -> UniformResponse:
        response = await self.client.post(
            ENDPOINTS["auth"]["login"], {"email": email, "password": password}
        )
        if response.success and response.data:
            await self._store_session(response)
            lib_logger.info(f"Logged in as {email}")
        else:
            lib_logger.warning(f"Login failed for {email}: {response.message}")
        return response

    async def register(self, data: Mapping[str, Any]) -> UniformResponse:
        response = await self.client.post(
            ENDPOINTS["auth"]["register"], build_register_payload(data)
        )
        if response.success and response.data:
            await self._store_session(response)
            lib_logger.info(f"Registered {data.get('email')}")
        return response

    async def logout(self) -> None:
        await self.store.delete_many(StorageKeys.SESSION)
        lib_logger.info("Logged out, session cleared")

    async def refresh_token(self) -> str:
        """
        Refreshes the access token now, through the client's coordinator
        so it never races a 401-triggered refresh.

        Raises:
            AuthExpiredError: no refresh token, or the backend rejected it.
        """
        return await self.client.coordinator.force_refresh()

    async def is_authenticated(self) -> bool:
        return bool(await self.store.get(StorageKeys.ACCESS_TOKEN))

    async def get_access_token(self) -> Optional[str]:
        return await self.store.get(StorageKeys.ACCESS_TOKEN)

    async def get_stored_user(self) -> Optional[Dict[str, Any]]:
        raw = await self.store.get(StorageKeys.USER_DATA)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            lib_logger.warning(f"Cached user payload is not valid JSON: {e}")
            return None

    async def get_profile(self) -> UniformResponse:
        return await self.client.get(ENDPOINTS["users"]["profile"])

    async def update_profile(self, data: Mapping[str, Any]) -> UniformResponse:
        response = await self.client.put(ENDPOINTS["users"]["profile"], dict(data))
        if response.success and response.data is not None:
            await self.store.set(StorageKeys.USER_DATA, json.dumps(response.data))
        return response
