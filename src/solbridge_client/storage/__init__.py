from .base import CredentialStore
from .file_store import JsonFileCredentialStore
from .memory_store import MemoryCredentialStore

__all__ = ["CredentialStore", "JsonFileCredentialStore", "MemoryCredentialStore"]
