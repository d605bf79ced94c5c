"""
Compteurs de performance persistés localement (diagnostic).
- Une valeur par métrique (la dernière rapportée), sous la clé 'performance_metrics'.
- Jamais bloquant: une erreur de stockage est journalisée puis ignorée.
"""
from typing import Any, Dict
import logging

from storefront.storage import KeyValueStore, read_json, write_json
from storefront.storage.keys import PERFORMANCE_METRICS_KEY

logger = logging.getLogger(__name__)


class PerformanceCounters:
    def __init__(self, storage: KeyValueStore):
        self._storage = storage

    def all(self) -> Dict[str, Any]:
        try:
            data = read_json(self._storage, PERFORMANCE_METRICS_KEY, {})
        except ValueError:
            logger.warning("diagnostics: performance_metrics illisible, réinitialisé")
            return {}
        return data if isinstance(data, dict) else {}

    def report(self, name: str, value: Any) -> None:
        metrics = self.all()
        metrics[name] = value
        try:
            write_json(self._storage, PERFORMANCE_METRICS_KEY, metrics)
        except Exception:
            logger.exception("diagnostics.report failed name=%s", name)

    def increment(self, name: str, step: int = 1) -> None:
        current = self.all().get(name)
        base = current if isinstance(current, int) and not isinstance(current, bool) else 0
        self.report(name, base + step)
