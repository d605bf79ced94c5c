"""
Backend fichier: un document JSON unique sur disque, remplacé atomiquement à chaque écriture.
- Relu à chaque accès: plusieurs processus observent les écritures des autres.
- dispatch_pending() compare avec le dernier état vu et notifie les changements extérieurs.
"""
from pathlib import Path
from typing import Dict, Iterable, Optional
import json
import logging
import os
import tempfile

from .base import KeyValueStore, StorageChange

logger = logging.getLogger(__name__)


class FileStorage(KeyValueStore):
    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._seen: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.exception("storage.file unreadable path=%s", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("storage.file ignored non-object document path=%s", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".storage-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        self._seen = dict(data)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = str(value)
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> Iterable[str]:
        return list(self._read().keys())

    def dispatch_pending(self) -> int:
        current = self._read()
        previous, self._seen = self._seen, current
        delivered = 0
        for key in sorted(set(previous) | set(current)):
            old, new = previous.get(key), current.get(key)
            if old != new:
                self._notify(StorageChange(key, old, new))
                delivered += 1
        return delivered
