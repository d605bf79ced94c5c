"""
Accès au backend pour la feature 'payments' (création d'intention, règlement, configuration).
"""
from typing import Any, Dict, List
import logging

import httpx

from storefront import config
from storefront.errors import NetworkError
from storefront.infra.http_client import request_json

logger = logging.getLogger(__name__)


# module storefront.payments.repository
async def get_publishable_key(client: httpx.AsyncClient, api_base_url: str, fallback: str = config.STRIPE_PUBLIC_KEY) -> str:
    """
    Récupère la clé publique Stripe via GET /payments/config.
    - Retourne la clé configurée (STRIPE_PUBLIC_KEY) si l'API est injoignable.
    """
    try:
        data = await request_json(client, "GET", f"{api_base_url}/payments/config")
        key = (data or {}).get("publishable_key")
        if key:
            return str(key)
    except NetworkError as e:
        logger.warning("payments.repository.get_publishable_key: API en échec (%s), clé de secours", e.message)
    return fallback


def _intent_ids(data: Dict[str, Any]) -> Dict[str, str]:
    intent_id = (data or {}).get("payment_intent_id")
    secret = (data or {}).get("client_secret")
    if not intent_id or not secret:
        raise NetworkError("Réponse create-intent incomplète")
    return {"payment_intent_id": str(intent_id), "client_secret": str(secret)}


async def create_pack_intent(client: httpx.AsyncClient, api_base_url: str, *, pack_id: str, customer_email: str, customer_name: str, amount: float) -> Dict[str, str]:
    data = await request_json(
        client,
        "POST",
        f"{api_base_url}/payments/create-intent",
        json={"pack_id": pack_id, "customer_email": customer_email, "customer_name": customer_name, "amount": amount},
    )
    return _intent_ids(data)


async def create_cart_intent(client: httpx.AsyncClient, api_base_url: str, *, cart_items: List[Dict[str, Any]], customer_email: str, customer_name: str, amount: float) -> Dict[str, str]:
    data = await request_json(
        client,
        "POST",
        f"{api_base_url}/payments/create-cart-intent",
        json={"cart_items": cart_items, "customer_email": customer_email, "customer_name": customer_name, "amount": amount},
    )
    return _intent_ids(data)


def _order(data: Dict[str, Any]) -> Dict[str, Any]:
    order = (data or {}).get("order")
    if not isinstance(order, dict) or order.get("id") in (None, ""):
        raise NetworkError("Réponse de règlement sans commande")
    return order


async def confirm_pack(client: httpx.AsyncClient, api_base_url: str, *, payment_intent_id: str, pack_id: str, customer_email: str, customer_name: str) -> Dict[str, Any]:
    """Règlement idempotent: le backend déduplique par payment_intent_id."""
    data = await request_json(
        client,
        "POST",
        f"{api_base_url}/payments/confirm",
        json={"payment_intent_id": payment_intent_id, "pack_id": pack_id, "customer_email": customer_email, "customer_name": customer_name},
    )
    return _order(data)


async def confirm_cart(client: httpx.AsyncClient, api_base_url: str, *, payment_intent_id: str, cart_items: List[Dict[str, Any]], customer_email: str, customer_name: str) -> Dict[str, Any]:
    """Règlement idempotent du panier: le backend déduplique par payment_intent_id."""
    data = await request_json(
        client,
        "POST",
        f"{api_base_url}/payments/confirm-cart",
        json={"payment_intent_id": payment_intent_id, "cart_items": cart_items, "customer_email": customer_email, "customer_name": customer_name},
    )
    return _order(data)
