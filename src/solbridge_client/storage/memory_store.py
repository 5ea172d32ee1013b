from typing import Dict, Iterable, Mapping, Optional

from .base import CredentialStore


class MemoryCredentialStore(CredentialStore):
    """Process-local store. set_many/delete_many complete without suspending."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def set_many(self, values: Mapping[str, str]) -> None:
        self._data.update(values)

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._data)
