from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional


class CredentialStore(ABC):
    """
    An async, string-keyed store for session secrets (access token,
    refresh token, cached user JSON).

    Implementations only need get/set/delete. set_many and delete_many
    exist so a store that can write several keys in one step (a single
    file write, a single dict update) does so; the defaults fall back to
    one call per key.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    async def set_many(self, values: Mapping[str, str]) -> None:
        for key, value in values.items():
            await self.set(key, value)

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            await self.delete(key)
