"""
Backend mémoire: utilisé en tests et pour simuler plusieurs onglets.
MemoryStorage.sibling() crée un contexte partageant les mêmes données.
"""
from typing import Dict, Iterable, List, Optional

from .base import KeyValueStore, StorageChange


class _SharedMemory:
    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.contexts: List["MemoryStorage"] = []

    def broadcast(self, origin: "MemoryStorage", change: StorageChange) -> None:
        for ctx in list(self.contexts):
            if ctx is not origin:
                ctx._notify(change)


class MemoryStorage(KeyValueStore):
    def __init__(self, shared: Optional[_SharedMemory] = None) -> None:
        super().__init__()
        self._shared = shared or _SharedMemory()
        self._shared.contexts.append(self)

    def sibling(self) -> "MemoryStorage":
        return MemoryStorage(self._shared)

    def close(self) -> None:
        if self in self._shared.contexts:
            self._shared.contexts.remove(self)

    def get_item(self, key: str) -> Optional[str]:
        return self._shared.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        old = self._shared.data.get(key)
        self._shared.data[key] = str(value)
        self._shared.broadcast(self, StorageChange(key, old, str(value)))

    def remove_item(self, key: str) -> None:
        if key not in self._shared.data:
            return
        old = self._shared.data.pop(key)
        self._shared.broadcast(self, StorageChange(key, old, None))

    def keys(self) -> Iterable[str]:
        return list(self._shared.data.keys())
