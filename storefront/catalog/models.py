"""
Schéma canonique du catalogue et adaptateur de normalisation.
Les réponses API et les snapshots nomment un même concept de plusieurs façons
(units / number_of_units, image_url / image, ...): le code interne ne voit qu'une forme.
"""
from typing import Any, Dict, List, Optional
import logging
import math

from pydantic import BaseModel

logger = logging.getLogger(__name__)

RESOURCES = ("packs", "products")


class Pack(BaseModel):
    id: str
    name: str
    price: float
    units: int = 0
    description: str = ""
    resale_estimate: Optional[str] = None
    image: Optional[str] = None
    slug: str
    type: Optional[str] = None
    status: Optional[str] = None


class Product(BaseModel):
    id: str
    name: str
    price: float
    slug: str
    description: str = ""
    image: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None


def _first(raw: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value not in (None, ""):
            return value
    return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def normalize_pack(raw: Dict[str, Any]) -> Pack:
    price = _as_float(_first(raw, "price"))
    if not raw.get("id") or price is None:
        raise ValueError("pack sans id ou prix")
    pack_id = str(raw["id"])
    return Pack(
        id=pack_id,
        name=str(raw.get("name") or raw.get("title") or pack_id),
        price=price,
        units=_as_int(_first(raw, "units", "number_of_units")),
        description=str(_first(raw, "short_description", "description") or ""),
        resale_estimate=_as_text(_first(raw, "estimated_resale_value", "resale_estimate")),
        image=_as_text(_first(raw, "image_url", "image")),
        slug=str(raw.get("slug") or pack_id),
        type=_as_text(raw.get("type")),
        status=_as_text(raw.get("status")),
    )


def normalize_product(raw: Dict[str, Any]) -> Product:
    price = _as_float(_first(raw, "price", "base_price"))
    if not raw.get("id") or price is None:
        raise ValueError("produit sans id ou prix")
    product_id = str(raw["id"])
    return Product(
        id=product_id,
        name=str(raw.get("name") or raw.get("title") or product_id),
        price=price,
        slug=str(raw.get("slug") or product_id),
        description=str(_first(raw, "short_description", "description") or ""),
        image=_as_text(_first(raw, "image_url", "image")),
        category=_as_text(raw.get("category")),
        type=_as_text(raw.get("type")),
        status=_as_text(raw.get("status")),
    )


_NORMALIZERS = {"packs": normalize_pack, "products": normalize_product}


def normalize_record(resource: str, raw: Any):
    if not isinstance(raw, dict):
        raise ValueError("enregistrement non-objet")
    return _NORMALIZERS[resource](raw)


def normalize_collection(resource: str, rows: List[Any]) -> list:
    """Normalise une collection; les enregistrements inexploitables sont écartés et journalisés."""
    out = []
    for raw in rows or []:
        try:
            out.append(normalize_record(resource, raw))
        except ValueError as e:
            logger.warning("catalog: enregistrement %s ignoré (%s): %r", resource, e, raw)
    return out


def extract_rows(resource: str, data: Any) -> List[Any]:
    """Tolère les enveloppes {resource: [...]}, {data: [...]} ou une liste nue."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in (resource, "data"):
            rows = data.get(key)
            if isinstance(rows, list):
                return rows
    return []


def extract_single(resource: str, data: Any) -> Optional[Dict[str, Any]]:
    """Tolère {pack: {...}}, {product: {...}}, {data: {...}} ou l'objet nu."""
    if not isinstance(data, dict):
        return None
    singular = resource[:-1]
    for key in (singular, "data"):
        value = data.get(key)
        if isinstance(value, dict):
            return value
    return data if data.get("id") is not None else None
