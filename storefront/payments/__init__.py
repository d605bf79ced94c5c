"""
Module 'payments' (feature-first): point d'entrée public.
Réunit modèles, adaptateur gateway (Stripe), accès backend et orchestrateur.
"""
from .gateway import PaymentGateway, StripeGateway, require_stripe
from .models import (
    CartOrder,
    CheckoutResult,
    Customer,
    GatewayError,
    GatewayResult,
    IntentStatus,
    Order,
    PackOrder,
    PaymentForm,
    PaymentIntent,
    PaymentState,
    UNEXPECTED_STATE_CODE,
)
from .service import PaymentOrchestrator

__all__ = [
    "PaymentGateway",
    "StripeGateway",
    "require_stripe",
    "CartOrder",
    "CheckoutResult",
    "Customer",
    "GatewayError",
    "GatewayResult",
    "IntentStatus",
    "Order",
    "PackOrder",
    "PaymentForm",
    "PaymentIntent",
    "PaymentState",
    "UNEXPECTED_STATE_CODE",
    "PaymentOrchestrator",
]
