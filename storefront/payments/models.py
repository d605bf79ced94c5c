"""
Modèles 'payments': états de l'orchestrateur, intention de paiement, commande, résultat gateway.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# Code Stripe renvoyé quand l'intention n'est plus confirmable (ex: double soumission)
UNEXPECTED_STATE_CODE = "payment_intent_unexpected_state"


class PaymentState(str, Enum):
    INIT = "INIT"
    FORM_READY = "FORM_READY"
    PROCESSING = "PROCESSING"
    CONFIRMING = "CONFIRMING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class IntentStatus(str, Enum):
    REQUIRES_CONFIRMATION = "requires_confirmation"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PaymentIntent(BaseModel):
    """Observé seulement: l'orchestrateur ne modifie jamais status."""
    model_config = ConfigDict(frozen=True)

    id: str
    client_secret: Optional[str] = None
    status: str = IntentStatus.REQUIRES_CONFIRMATION.value

    @property
    def succeeded(self) -> bool:
        return self.status == IntentStatus.SUCCEEDED.value


class Customer(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1)


class CartOrder(BaseModel):
    items: List[Dict[str, Any]] = Field(min_length=1)

    @property
    def display_amount(self) -> float:
        # Affichage uniquement: le backend calcule le montant débité
        return round(sum(float(it.get("price") or 0) * int(it.get("quantity") or 0) for it in self.items), 2)


class PackOrder(BaseModel):
    pack_id: str = Field(min_length=1)
    price: float = Field(ge=0)
    name: Optional[str] = None

    @property
    def display_amount(self) -> float:
        return round(self.price, 2)


class Order(BaseModel):
    """Commande renvoyée par le règlement backend (champs additionnels conservés)."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str


@dataclass(frozen=True)
class PaymentForm:
    """Poignée de l'UI de paiement hébergée, liée au client_secret de l'intention."""
    intent_id: str
    client_secret: str
    publishable_key: str
    display_amount: float


@dataclass(frozen=True)
class GatewayError:
    message: str
    code: Optional[str] = None


@dataclass(frozen=True)
class GatewayResult:
    intent: Optional[PaymentIntent] = None
    error: Optional[GatewayError] = None


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    redirect_to: str
