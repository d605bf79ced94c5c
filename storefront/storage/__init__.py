"""
Module 'storage': stockage clé-valeur persistant à backends interchangeables.
- memory (tests, onglets simulés), file (document JSON), redis (partagé entre processus)
"""
from storefront import config

from .base import KeyValueStore, StorageChange, read_json, write_json
from .file import FileStorage
from .memory import MemoryStorage

__all__ = [
    "KeyValueStore",
    "StorageChange",
    "read_json",
    "write_json",
    "MemoryStorage",
    "FileStorage",
    "build_storage",
]


def build_storage(backend: str = None) -> KeyValueStore:
    """
    Construit le backend configuré (STORAGE_BACKEND).
    - Lève ValueError si le nom est inconnu.
    """
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return FileStorage(config.STORAGE_PATH)
    if backend == "redis":
        from .redis_store import RedisStorage
        return RedisStorage.from_url(config.STORAGE_REDIS_URL, prefix=config.STORAGE_REDIS_PREFIX)
    raise ValueError(f"STORAGE_BACKEND inconnu: {backend}")
