"""
Backend Redis: clés préfixées, changements publiés sur un canal pub/sub.
- Chaque contexte a un identifiant d'origine; ses propres publications sont ignorées.
- Pas de thread d'écoute: dispatch_pending() vide la file pub/sub (modèle coopératif).
"""
from typing import Iterable, Optional
import json
import logging
import uuid

import redis

from .base import KeyValueStore, StorageChange

logger = logging.getLogger(__name__)


class RedisStorage(KeyValueStore):
    def __init__(self, client: "redis.Redis", prefix: str = "storefront:") -> None:
        super().__init__()
        self._client = client
        self._prefix = prefix
        self._channel = f"{prefix}changes"
        self._origin = uuid.uuid4().hex
        self._pubsub = client.pubsub()
        self._pubsub.subscribe(self._channel)

    @classmethod
    def from_url(cls, url: str, prefix: str = "storefront:") -> "RedisStorage":
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True), prefix=prefix)

    def _k(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _publish(self, key: str, old: Optional[str], new: Optional[str]) -> None:
        payload = json.dumps({"origin": self._origin, "key": key, "old": old, "new": new})
        try:
            self._client.publish(self._channel, payload)
        except redis.RedisError:
            logger.exception("storage.redis publish failed key=%s", key)

    @staticmethod
    def _text(value) -> Optional[str]:
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    def get_item(self, key: str) -> Optional[str]:
        return self._text(self._client.get(self._k(key)))

    def set_item(self, key: str, value: str) -> None:
        old = self.get_item(key)
        self._client.set(self._k(key), str(value))
        self._publish(key, old, str(value))

    def remove_item(self, key: str) -> None:
        old = self.get_item(key)
        if old is None:
            return
        self._client.delete(self._k(key))
        self._publish(key, old, None)

    def keys(self) -> Iterable[str]:
        plen = len(self._prefix)
        return [self._text(k)[plen:] for k in self._client.scan_iter(match=f"{self._prefix}*") if self._text(k) != self._channel]

    def dispatch_pending(self) -> int:
        delivered = 0
        while True:
            message = self._pubsub.get_message(timeout=0)
            if message is None:
                break
            if message.get("type") != "message":
                continue
            try:
                data = json.loads(self._text(message.get("data")) or "{}")
            except ValueError:
                logger.warning("storage.redis ignored malformed change message")
                continue
            if data.get("origin") == self._origin:
                continue
            self._notify(StorageChange(data.get("key"), data.get("old"), data.get("new")))
            delivered += 1
        return delivered

    def close(self) -> None:
        self._pubsub.close()
