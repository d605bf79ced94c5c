from dataclasses import asdict
from typing import Literal, Optional
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from storefront.errors import ValidationError
from storefront.services import Services, get_services

from .models import CartOrder, Customer, PackOrder

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout"])


class IntentRequest(BaseModel):
    kind: Literal["cart", "pack"] = "cart"
    customer: Customer
    pack: Optional[PackOrder] = None


class ConfirmRequest(BaseModel):
    payment_method: Optional[str] = None


@router.post("/intent")
async def create_intent(req: IntentRequest, services: Services = Depends(get_services)):
    """
    Body:
    { "kind": "cart" | "pack", "customer": {"email", "name"}, "pack": {"pack_id", "price", "name"} }
    - cart: la commande est le snapshot courant du panier (400 si vide)
    - 402 {retryable: true} si l'intention ne peut pas être créée
    """
    if req.kind == "pack":
        if req.pack is None:
            raise ValidationError("Pack requis pour un paiement de pack")
        order = req.pack
    else:
        items = services.cart.get_cart_data()["items"]
        if not items:
            raise ValidationError("Panier vide")
        order = CartOrder(items=items)

    form = await services.orchestrator.create_intent(order, req.customer)
    logger.info("checkout.intent kind=%s intent=%s", req.kind, form.intent_id)
    return {"form": asdict(form), "state": services.orchestrator.snapshot()}


@router.post("/confirm")
async def confirm(req: ConfirmRequest, services: Services = Depends(get_services)):
    result = await services.orchestrator.confirm_payment(req.payment_method)
    return {"order": result.order.model_dump(), "redirect_to": result.redirect_to}


@router.get("/state")
def state(services: Services = Depends(get_services)):
    return services.orchestrator.snapshot()
