"""
Accès aux sources du catalogue: API backend (primaire) et snapshots statiques (secours).
"""
from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging

import httpx

from storefront import config
from storefront.errors import NetworkError
from storefront.infra.http_client import request_json

logger = logging.getLogger(__name__)

FILTER_KEYS = ("type", "status", "limit", "offset")


# module storefront.catalog.repository
def build_query(filters: Optional[Dict[str, Any]], default_limit: int = config.DEFAULT_PAGE_LIMIT) -> Dict[str, str]:
    """
    Traduit les filtres supportés (type, status, limit, offset) en paramètres de requête.
    - limit vaut default_limit si absent (récupérer tout le catalogue par défaut)
    - les clés inconnues et valeurs vides sont ignorées
    """
    filters = filters or {}
    params: Dict[str, str] = {"limit": str(filters.get("limit") or default_limit)}
    for key in ("offset", "status", "type"):
        value = filters.get(key)
        if value not in (None, ""):
            params[key] = str(value)
    return params


async def fetch_api(client: httpx.AsyncClient, url: str, params: Optional[Dict[str, str]] = None) -> Any:
    return await request_json(client, "GET", url, params=params)


async def fetch_fallback(
    resource: str,
    client: Optional[httpx.AsyncClient] = None,
    data_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
) -> Any:
    """
    Charge le snapshot statique '<resource>.json'.
    - Via HTTP si base_url est fourni, sinon depuis data_dir
    - NetworkError si le snapshot est introuvable ou illisible
    """
    base_url = config.FALLBACK_BASE_URL if base_url is None else base_url
    if base_url:
        if client is None:
            raise NetworkError("client HTTP requis pour le snapshot distant")
        return await request_json(client, "GET", f"{base_url}/{resource}.json")

    path = Path(data_dir or config.FALLBACK_DATA_DIR) / f"{resource}.json"
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:
        raise NetworkError(f"snapshot {path} indisponible: {e}") from e
