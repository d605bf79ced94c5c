from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from storefront.services import Services, get_services

router = APIRouter(prefix="/api/v1/cart", tags=["Cart"])


class AddItemRequest(BaseModel):
    # La validation métier (prix, id, nom) reste dans validate_new_item
    model_config = ConfigDict(extra="ignore")

    id: Any = None
    name: Any = None
    price: Any = None
    image: Optional[str] = None
    slug: Optional[str] = None


@router.get("")
def get_cart(services: Services = Depends(get_services)):
    return services.cart.get_cart_data()


@router.post("/items", status_code=201)
def add_item(req: AddItemRequest, services: Services = Depends(get_services)):
    """Ajoute un article (quantité +1 s'il est déjà présent). 400 si l'article est invalide."""
    item = services.cart.add_item(req.model_dump(exclude_none=True))
    return {"item": item.to_dict(), "cart": services.cart.get_cart_data()}


@router.delete("/items/{item_id}")
def remove_item(item_id: str, services: Services = Depends(get_services)):
    removed = services.cart.remove_item(item_id)
    return {"removed": removed, "cart": services.cart.get_cart_data()}


@router.delete("")
def clear_cart(services: Services = Depends(get_services)):
    services.cart.clear()
    return services.cart.get_cart_data()
