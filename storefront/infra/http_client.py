"""
Client HTTP partagé (httpx.AsyncClient) et conversion des échecs en NetworkError.
- Un seul client par processus, construit une fois et injecté dans les services.
- Timeout explicite par requête (HTTP_TIMEOUT_SECONDS par défaut).
"""
from typing import Any, Optional
import logging

import httpx

from storefront.config import HTTP_TIMEOUT_SECONDS
from storefront.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/json"}


def build_http_client(timeout: float = HTTP_TIMEOUT_SECONDS, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, headers=DEFAULT_HEADERS, transport=transport)


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
        if isinstance(body, dict):
            msg = body.get("error") or body.get("message") or body.get("detail")
            if msg:
                return str(msg)
    except ValueError:
        pass
    return f"HTTP {resp.status_code}"


async def send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """
    Envoie une requête et retourne la réponse brute, quel que soit le statut.
    - NetworkError si le transport échoue (connexion, timeout)
    """
    try:
        return await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        raise NetworkError(f"{method} {url} injoignable: {e.__class__.__name__}") from e


async def request_json(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> Any:
    """
    Envoie une requête JSON et retourne le corps décodé.
    - NetworkError si transport en échec, statut non-2xx (status_code renseigné) ou corps non-JSON
    - Un corps {"success": false, "error": ...} en 2xx est traité comme un échec (contrat de l'API)
    """
    resp = await send(client, method, url, **kwargs)
    if not resp.is_success:
        raise NetworkError(_error_message(resp), status_code=resp.status_code)
    try:
        data = resp.json()
    except ValueError as e:
        raise NetworkError(f"{method} {url}: réponse non-JSON", status_code=resp.status_code) from e
    if isinstance(data, dict) and data.get("success") is False:
        raise NetworkError(str(data.get("error") or "Requête refusée"), status_code=resp.status_code)
    return data
