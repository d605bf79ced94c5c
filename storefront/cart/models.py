"""
Modèle CartItem et règles de validité.
- validate_new_item: frontière d'ajout (ValidationError, aucune mutation si invalide)
- parse_stored_item: relecture du snapshot persisté (DataCorruptionError si l'entrée est à écarter)
"""
from typing import Any, Dict, Optional
import math

from pydantic import BaseModel, Field

from storefront.errors import DataCorruptionError, ValidationError


class CartItem(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    image: Optional[str] = None
    slug: Optional[str] = None
    quantity: int = Field(default=1, ge=1)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


def _text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def validate_new_item(raw: Dict[str, Any]) -> CartItem:
    """
    Valide un article brut avant ajout au panier.
    - id et name présents et non vides
    - price: nombre fini >= 0 (une chaîne numérique, ex. attribut data-*, est acceptée)
    """
    raw = raw or {}
    item_id = _text(raw.get("id"))
    name = _text(raw.get("name"))
    price = raw.get("price")
    if isinstance(price, str):
        try:
            price = float(price.strip())
        except ValueError:
            price = None
    if not item_id or not name or not _is_number(price) or price < 0:
        raise ValidationError("Impossible d'ajouter l'article: données requises manquantes")
    return CartItem(
        id=item_id,
        name=name,
        price=float(price),
        image=_optional_text(raw.get("image")),
        slug=_optional_text(raw.get("slug")),
        quantity=1,
    )


def parse_stored_item(raw: Any) -> CartItem:
    """
    Vérifie l'invariant CartItem sur une entrée relue du stockage.
    - id/name non vides, price numérique (pas de chaîne) >= 0, quantity entière > 0
    """
    if not isinstance(raw, dict):
        raise DataCorruptionError("entrée de panier non-objet")
    item_id = raw.get("id")
    name = raw.get("name")
    price = raw.get("price")
    quantity = raw.get("quantity")
    if not isinstance(item_id, str) or not item_id.strip():
        raise DataCorruptionError("id manquant")
    if not isinstance(name, str) or not name.strip():
        raise DataCorruptionError("name manquant")
    if not _is_number(price) or price < 0:
        raise DataCorruptionError("price invalide")
    if not _is_number(quantity) or quantity <= 0 or int(quantity) != quantity:
        raise DataCorruptionError("quantity invalide")
    return CartItem(
        id=item_id,
        name=name,
        price=price,
        image=raw.get("image") if isinstance(raw.get("image"), str) else None,
        slug=raw.get("slug") if isinstance(raw.get("slug"), str) else None,
        quantity=int(quantity),
    )
