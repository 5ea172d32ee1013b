# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
JSON-file credential store.

Keeps every key in one JSON object on disk so a token pair is always
replaced or removed with a single atomic write.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

import aiofiles

from .base import CredentialStore

lib_logger = logging.getLogger("solbridge_client")


class JsonFileCredentialStore(CredentialStore):
    """
    Persists session secrets to a JSON file.

    Features:
    - Async file I/O with aiofiles
    - Atomic writes (write to temp, then rename)
    - Owner-only file permissions where the platform supports them
    """

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path).expanduser()
        self._lock = asyncio.Lock()

    async def _read(self) -> Dict[str, str]:
        if not self.file_path.exists():
            return {}

        async with aiofiles.open(self.file_path, "r", encoding="utf-8") as f:
            content = await f.read()

        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            lib_logger.warning(
                f"Credential file {self.file_path} is corrupt, treating as empty: {e}"
            )
            return {}

        if not isinstance(data, dict):
            lib_logger.warning(
                f"Credential file {self.file_path} does not hold an object, treating as empty"
            )
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    async def _write(self, data: Dict[str, str]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.file_path.with_suffix(".tmp")

        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2))

        try:
            os.chmod(temp_path, 0o600)
        except (OSError, NotImplementedError):
            pass

        temp_path.replace(self.file_path)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await self._read()
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def delete(self, key: str) -> None:
        await self.delete_many([key])

    async def set_many(self, values: Mapping[str, str]) -> None:
        async with self._lock:
            data = await self._read()
            data.update(values)
            await self._write(data)
        lib_logger.debug(f"Stored {len(values)} credential key(s) in {self.file_path}")

    async def delete_many(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        async with self._lock:
            data = await self._read()
            if not any(key in data for key in keys):
                return
            for key in keys:
                data.pop(key, None)
            await self._write(data)
        lib_logger.debug(f"Removed {len(keys)} credential key(s) from {self.file_path}")
