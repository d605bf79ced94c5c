"""
Adaptateur passerelle de paiement: centralise les appels Stripe.
- PaymentGateway: contrat utilisé par l'orchestrateur (mount, retrieve, confirm)
- StripeGateway: implémentation via le SDK stripe (appels synchrones exécutés hors boucle)
"""
from typing import Optional
import asyncio
import logging

import stripe

from storefront.config import STRIPE_SECRET_KEY

from .models import GatewayError, GatewayResult, PaymentForm, PaymentIntent

logger = logging.getLogger(__name__)


# module storefront.payments.gateway
def require_stripe(secret_key: str = STRIPE_SECRET_KEY):
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key si une clé est disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if secret_key:
        stripe.api_key = secret_key
    return stripe


class PaymentGateway:
    async def mount(self, intent_id: str, client_secret: str, publishable_key: str, display_amount: float) -> PaymentForm:
        return PaymentForm(
            intent_id=intent_id,
            client_secret=client_secret,
            publishable_key=publishable_key,
            display_amount=display_amount,
        )

    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        raise NotImplementedError

    async def confirm_payment(
        self,
        intent_id: str,
        payment_method: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> GatewayResult:
        raise NotImplementedError


def _to_intent(obj) -> PaymentIntent:
    return PaymentIntent(
        id=obj.get("id") if hasattr(obj, "get") else obj.id,
        client_secret=obj.get("client_secret") if hasattr(obj, "get") else getattr(obj, "client_secret", None),
        status=(obj.get("status") if hasattr(obj, "get") else obj.status) or "",
    )


class StripeGateway(PaymentGateway):
    def __init__(self, secret_key: str = STRIPE_SECRET_KEY):
        self._stripe = require_stripe(secret_key)

    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        obj = await asyncio.to_thread(self._stripe.PaymentIntent.retrieve, intent_id)
        return _to_intent(obj)

    async def confirm_payment(
        self,
        intent_id: str,
        payment_method: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> GatewayResult:
        """
        Confirme l'intention côté Stripe.
        - Erreur Stripe => GatewayResult(error=...) avec code et message utilisateur
        - Succès => GatewayResult(intent=...) avec le statut observé
        """
        params = {}
        if payment_method:
            params["payment_method"] = payment_method
        if return_url:
            params["return_url"] = return_url
        try:
            obj = await asyncio.to_thread(self._stripe.PaymentIntent.confirm, intent_id, **params)
        except stripe.StripeError as e:
            logger.warning("payments.gateway confirm refused intent=%s code=%s", intent_id, getattr(e, "code", None))
            return GatewayResult(
                error=GatewayError(
                    message=getattr(e, "user_message", None) or str(e) or "Paiement refusé",
                    code=getattr(e, "code", None),
                )
            )
        return GatewayResult(intent=_to_intent(obj))
