"""
Cas d'usage 'catalog': chargeur résilient (API d'abord, snapshot statique en secours, cache TTL).
Contrat: « meilleure donnée disponible, ou vide », jamais d'exception vers l'appelant,
et la source qui a répondu reste invisible sur le chemin de succès.
"""
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote
import logging
import time

import httpx

from storefront import config
from storefront.diagnostics import PerformanceCounters
from storefront.errors import NetworkError

from . import repository
from .cache import TTLCache, make_cache_key
from .models import RESOURCES, extract_rows, extract_single, normalize_collection, normalize_record

logger = logging.getLogger(__name__)


class DataLoader:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_base_url: str = config.API_BASE_URL,
        cache: Optional[TTLCache] = None,
        data_dir: Optional[Path] = None,
        fallback_base_url: Optional[str] = None,
        counters: Optional[PerformanceCounters] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self.api_base_url = api_base_url.rstrip("/")
        self.cache = cache if cache is not None else TTLCache()
        self._data_dir = data_dir
        self._fallback_base_url = fallback_base_url
        self._counters = counters
        self._clock = clock
        self._collections: Dict[str, list] = {}

    # --- lectures API (cache TTL) ---

    async def _api_get(self, path: str, params: Optional[Dict[str, str]] = None, use_cache: bool = True) -> Any:
        url = f"{self.api_base_url}{path}"
        key = make_cache_key(url, params)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        started = self._clock()
        data = await repository.fetch_api(self._client, url, params)
        if self._counters:
            self._counters.report("api_ms", round((self._clock() - started) * 1000, 1))
        if use_cache:
            self.cache.set(key, data)
        return data

    async def _load_fallback(self, resource: str) -> list:
        data = await repository.fetch_fallback(
            resource,
            client=self._client,
            data_dir=self._data_dir,
            base_url=self._fallback_base_url,
        )
        if self._counters:
            self._counters.increment("fallback_reads")
        return normalize_collection(resource, extract_rows(resource, data))

    # --- contrat public ---

    async def load_collection(self, resource: str, filters: Optional[Dict[str, Any]] = None) -> list:
        """
        Charge une collection (packs, products).
        - API avec filtres traduits en query; résultat vide ou échec => snapshot statique
        - Les deux en échec => [] (l'appelant affiche un état « aucune donnée »)
        """
        if resource not in RESOURCES:
            logger.warning("catalog.load_collection: ressource inconnue %s", resource)
            return []
        try:
            data = await self._api_get(f"/{resource}", repository.build_query(filters))
            items = normalize_collection(resource, extract_rows(resource, data))
            if items:
                self._collections[resource] = items
                return items
            logger.info("catalog.load_collection: API vide pour %s, bascule sur le snapshot", resource)
        except NetworkError as e:
            logger.warning("catalog.load_collection: API en échec pour %s (%s), bascule sur le snapshot", resource, e.message)
        except Exception:
            logger.exception("catalog.load_collection: erreur inattendue API %s", resource)

        try:
            items = _apply_filters(await self._load_fallback(resource), filters)
        except NetworkError as e:
            logger.error("catalog.load_collection: API et snapshot en échec pour %s (%s)", resource, e.message)
            items = []
        except Exception:
            logger.exception("catalog.load_collection: erreur inattendue snapshot %s", resource)
            items = []
        self._collections[resource] = items
        return items

    async def get_by_id(self, resource: str, item_id: Any):
        """
        Retourne un enregistrement par id (ou slug pour les produits), None si introuvable partout.
        1) collection déjà chargée  2) GET /<resource>/<id>  3) snapshot complet
        """
        if resource not in RESOURCES or item_id in (None, ""):
            return None
        wanted = str(item_id)
        found = _find(self._collections.get(resource) or [], wanted)
        if found:
            return found

        try:
            data = await self._api_get(f"/{resource}/{quote(wanted, safe='')}")
            raw = extract_single(resource, data)
            if raw:
                return normalize_record(resource, raw)
        except NetworkError as e:
            logger.warning("catalog.get_by_id: API en échec %s/%s (%s)", resource, wanted, e.message)
        except Exception:
            logger.exception("catalog.get_by_id: réponse API inexploitable %s/%s", resource, wanted)

        try:
            return _find(await self._load_fallback(resource), wanted)
        except Exception:
            logger.exception("catalog.get_by_id: snapshot en échec %s/%s", resource, wanted)
            return None

    # --- lectures annexes ---

    async def get_featured(self, limit: int = 4) -> list:
        packs = await self.load_collection("packs", {"limit": limit})
        return packs[:limit]

    async def get_by_status(self, status: str) -> list:
        return await self.load_collection("packs", {"status": status})

    async def get_by_type(self, pack_type: str) -> list:
        return await self.load_collection("packs", {"type": pack_type})

    async def get_manifest(self, pack_id: str, fmt: str = "json") -> Optional[Any]:
        """Manifeste d'un pack (mis en cache); None si indisponible."""
        try:
            return await self._api_get(f"/manifests/{quote(str(pack_id), safe='')}", {"format": fmt})
        except NetworkError as e:
            logger.warning("catalog.get_manifest: indisponible pack=%s (%s)", pack_id, e.message)
            return None

    async def get_inventory(self, pack_id: str) -> Optional[Any]:
        """Inventaire temps réel: jamais mis en cache."""
        try:
            return await self._api_get(f"/packs/{quote(str(pack_id), safe='')}/inventory", use_cache=False)
        except NetworkError as e:
            logger.warning("catalog.get_inventory: indisponible pack=%s (%s)", pack_id, e.message)
            return None


def _find(items: List[Any], wanted: str):
    for item in items:
        if str(item.id) == wanted or getattr(item, "slug", None) == wanted:
            return item
    return None


def _apply_filters(items: list, filters: Optional[Dict[str, Any]]) -> list:
    """Applique localement au snapshot les filtres explicitement demandés."""
    filters = filters or {}
    for key in ("type", "status"):
        value = filters.get(key)
        if value not in (None, ""):
            items = [it for it in items if getattr(it, key, None) == str(value)]
    try:
        offset = int(filters.get("offset") or 0)
    except (TypeError, ValueError):
        offset = 0
    items = items[max(offset, 0):]
    limit = filters.get("limit")
    if limit not in (None, ""):
        try:
            items = items[: max(int(limit), 0)]
        except (TypeError, ValueError):
            pass
    return items
