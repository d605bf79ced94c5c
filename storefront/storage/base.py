"""
Interface du stockage clé-valeur persistant (équivalent localStorage).
- Lecture/écriture synchrones, pas de transaction multi-clés.
- Notification des changements faits par un AUTRE contexte partageant le même backend
  (comme l'événement 'storage' du navigateur, jamais émis dans le contexte écrivain).
"""
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional
import json
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageChange:
    key: str
    old_value: Optional[str]
    new_value: Optional[str]


StorageListener = Callable[[StorageChange], None]


class KeyValueStore:
    def __init__(self) -> None:
        self._listeners: List[StorageListener] = []

    # --- à implémenter par les backends ---

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> Iterable[str]:
        raise NotImplementedError

    def dispatch_pending(self) -> int:
        """Délivre les changements distants en attente (backends sans push). Retourne le nombre délivré."""
        return 0

    # --- abonnements ---

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, change: StorageChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("storage listener failed key=%s", change.key)


def read_json(store: KeyValueStore, key: str, default: Any = None) -> Any:
    """
    Lit et désérialise une valeur JSON.
    - Retourne default si la clé est absente.
    - Lève ValueError si le contenu n'est pas du JSON valide (l'appelant décide de la récupération).
    """
    raw = store.get_item(key)
    if raw is None:
        return default
    return json.loads(raw)


def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set_item(key, json.dumps(value))
