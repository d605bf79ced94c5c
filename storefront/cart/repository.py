"""
Persistance du panier: snapshot complet (séquence de CartItem) sous la clé 'kv-garage-cart'.
"""
from typing import Any, List
import json
import logging

from storefront.errors import DataCorruptionError
from storefront.storage import KeyValueStore
from storefront.storage.keys import CART_KEY

from .models import CartItem

logger = logging.getLogger(__name__)


# module storefront.cart.repository
def read_snapshot(storage: KeyValueStore, key: str = CART_KEY) -> List[Any]:
    """
    Lit le snapshot brut.
    - [] si absent
    - DataCorruptionError si le contenu n'est pas une liste JSON
    """
    raw = storage.get_item(key)
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise DataCorruptionError(f"snapshot panier illisible: {e}") from e
    if not isinstance(data, list):
        raise DataCorruptionError("snapshot panier non-liste")
    return data


def write_snapshot(storage: KeyValueStore, items: List[CartItem], key: str = CART_KEY) -> bool:
    """
    Écrit le snapshot complet (jamais en append).
    - Retourne False si l'écriture échoue (quota, disque, réseau Redis): journalisé, non levé.
    """
    try:
        storage.set_item(key, json.dumps([it.to_dict() for it in items]))
        return True
    except Exception:
        logger.exception("cart.repository.write_snapshot failed items=%s", len(items))
        return False
