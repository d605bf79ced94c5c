"""
Cas d'usage 'cart': agrégat panier persisté après chaque mutation.
- add_item / remove_item / clear: mutation + snapshot complet + notification on_cart_changed
- load_cart: relecture avec filtrage des entrées corrompues (silencieux pour l'utilisateur, journalisé)
- Synchronisation inter-onglets: un changement de la clé panier par un autre contexte déclenche reload()
"""
from typing import Any, Dict, List, Optional
import logging

from storefront.errors import DataCorruptionError
from storefront.events import CartChanged, EventBus
from storefront.storage import KeyValueStore, StorageChange
from storefront.storage.keys import CART_KEY

from . import repository
from .models import CartItem, parse_stored_item, validate_new_item

logger = logging.getLogger(__name__)


class CartStore:
    def __init__(self, storage: KeyValueStore, events: Optional[EventBus] = None, key: str = CART_KEY):
        self._storage = storage
        self._events = events if events is not None else EventBus()
        self._key = key
        self._items: List[CartItem] = []
        self.last_removed_count = 0
        self._unsubscribe = storage.subscribe(self._on_storage_change)
        self.load_cart()

    # --- lecture ---

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get_item(self, item_id: str) -> Optional[CartItem]:
        return next((it for it in self._items if it.id == item_id), None)

    def get_total_items(self) -> int:
        return sum(it.quantity for it in self._items)

    def get_total_price(self) -> float:
        return round(sum(it.line_total for it in self._items), 2)

    def get_cart_data(self) -> Dict[str, Any]:
        """Snapshot pour le checkout: {items, total_items, total_price}."""
        return {
            "items": [it.to_dict() for it in self._items],
            "total_items": self.get_total_items(),
            "total_price": self.get_total_price(),
        }

    # --- mutations ---

    def add_item(self, raw: Dict[str, Any]) -> CartItem:
        """
        Ajoute un article (ou incrémente sa quantité si l'id existe déjà).
        - ValidationError levée avant toute mutation si l'article est invalide
        """
        candidate = validate_new_item(raw)
        existing = self.get_item(candidate.id)
        if existing:
            existing.quantity += 1
            item = existing
        else:
            self._items.append(candidate)
            item = candidate
        self._commit()
        return item

    def remove_item(self, item_id: str) -> bool:
        """Retire l'article s'il est présent; absent => no-op (pas une erreur). Retourne True si retiré."""
        before = len(self._items)
        self._items = [it for it in self._items if it.id != item_id]
        self._commit()
        return len(self._items) != before

    def clear(self) -> None:
        self._items = []
        self._commit()

    # --- chargement / récupération ---

    def load_cart(self) -> int:
        """
        Recharge le snapshot persisté et écarte les entrées violant l'invariant CartItem.
        - Re-persiste la séquence nettoyée si des entrées ont été retirées
        - Retourne le nombre d'entrées retirées
        """
        try:
            raw_items = repository.read_snapshot(self._storage, self._key)
        except DataCorruptionError as e:
            logger.warning("cart.load_cart: snapshot corrompu, panier réinitialisé (%s)", e.message)
            self._items = []
            self.last_removed_count = 0
            repository.write_snapshot(self._storage, self._items, self._key)
            self._emit()
            return 0

        self._items, removed = self._filter_valid(raw_items)
        self.last_removed_count = removed
        if removed:
            logger.info("cart.load_cart: %s entrée(s) corrompue(s) retirée(s)", removed)
            repository.write_snapshot(self._storage, self._items, self._key)
        self._emit()
        return removed

    def reload(self) -> int:
        return self.load_cart()

    def clean_corrupted_items(self) -> int:
        """Ré-applique le filtre de chargement sur la séquence en mémoire."""
        self._items, removed = self._filter_valid([it.to_dict() for it in self._items])
        if removed:
            repository.write_snapshot(self._storage, self._items, self._key)
            self._emit()
        return removed

    def close(self) -> None:
        self._unsubscribe()

    # --- interne ---

    def _filter_valid(self, raw_items: List[Any]):
        valid: List[CartItem] = []
        seen: Dict[str, CartItem] = {}
        for raw in raw_items:
            try:
                item = parse_stored_item(raw)
            except DataCorruptionError as e:
                logger.warning("cart: entrée corrompue retirée (%s): %r", e.message, raw)
                continue
            # Invariant: un seul CartItem par id; les doublons persistés sont fusionnés
            if item.id in seen:
                seen[item.id].quantity += item.quantity
                continue
            seen[item.id] = item
            valid.append(item)
        return valid, len(raw_items) - len(valid)

    def _commit(self) -> None:
        repository.write_snapshot(self._storage, self._items, self._key)
        self._emit()

    def _emit(self) -> None:
        self._events.emit_cart_changed(
            CartChanged(
                items=[it.to_dict() for it in self._items],
                total_items=self.get_total_items(),
                total_price=self.get_total_price(),
            )
        )

    def _on_storage_change(self, change: StorageChange) -> None:
        if change.key == self._key:
            self.reload()
