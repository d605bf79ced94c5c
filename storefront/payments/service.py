"""
Cas d'usage 'payments': orchestre intention backend, confirmation gateway et règlement idempotent.

Machine d'états: INIT -> FORM_READY -> PROCESSING -> CONFIRMING -> SUCCEEDED | FAILED
- Échec avant débit (gateway refuse, intention non créée): FAILED rejouable (nouvel appel confirm_payment)
- Débit confirmé puis règlement en échec: FAILED non rejouable, orientation support (PostChargeUnsettledError)
- Au plus une confirmation en vol par contexte (submit_enabled faux pendant PROCESSING/CONFIRMING)
"""
from typing import Optional, Union
import asyncio
import logging

import httpx

from storefront import config
from storefront.cart import CartStore
from storefront.errors import NetworkError, PaymentError, PostChargeUnsettledError, PreChargePaymentError
from storefront.storage import KeyValueStore, write_json
from storefront.storage.keys import LAST_CART_ORDER_KEY, LAST_PACK_ORDER_KEY

from . import repository
from .gateway import PaymentGateway
from .models import (
    UNEXPECTED_STATE_CODE,
    CartOrder,
    CheckoutResult,
    Customer,
    IntentStatus,
    Order,
    PackOrder,
    PaymentForm,
    PaymentState,
)

logger = logging.getLogger(__name__)

IN_FLIGHT_STATES = (PaymentState.PROCESSING, PaymentState.CONFIRMING)


class PaymentOrchestrator:
    def __init__(
        self,
        client: httpx.AsyncClient,
        gateway: PaymentGateway,
        storage: KeyValueStore,
        cart: Optional[CartStore] = None,
        api_base_url: str = config.API_BASE_URL,
        create_retries: int = config.PAYMENT_CREATE_RETRIES,
        retry_backoff_seconds: float = 0.5,
        confirm_timeout_seconds: float = config.PAYMENT_CONFIRM_TIMEOUT_SECONDS,
        cart_success_path: str = config.CART_SUCCESS_PATH,
        pack_success_path: str = config.PACK_SUCCESS_PATH,
    ):
        self._client = client
        self._gateway = gateway
        self._storage = storage
        self._cart = cart
        self.api_base_url = api_base_url.rstrip("/")
        self.create_retries = max(0, create_retries)
        self.retry_backoff_seconds = retry_backoff_seconds
        self.confirm_timeout_seconds = confirm_timeout_seconds
        self.cart_success_path = cart_success_path
        self.pack_success_path = pack_success_path
        self._reset()

    def _reset(self) -> None:
        self.state = PaymentState.INIT
        self.order: Optional[Union[CartOrder, PackOrder]] = None
        self.customer: Optional[Customer] = None
        self.intent_id: Optional[str] = None
        self.client_secret: Optional[str] = None
        self.form: Optional[PaymentForm] = None
        self.last_error: Optional[PaymentError] = None
        self.result: Optional[CheckoutResult] = None
        self._charged = False
        self.settlement_calls = 0

    # --- état observable ---

    @property
    def submit_enabled(self) -> bool:
        """Contrôle de soumission: désactivé pendant un appel en vol et après un état final sans reprise."""
        if self.state in IN_FLIGHT_STATES or self.state == PaymentState.SUCCEEDED:
            return False
        if self._charged:
            return False
        return self.form is not None

    @property
    def display_amount(self) -> Optional[float]:
        return self.order.display_amount if self.order else None

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "intent_id": self.intent_id,
            "display_amount": self.display_amount,
            "submit_enabled": self.submit_enabled,
            "error": self.last_error.message if self.last_error else None,
            "retryable": self.last_error.retryable if self.last_error else None,
            "redirect_to": self.result.redirect_to if self.result else None,
        }

    # --- étape 1: intention ---

    async def create_intent(self, order: Union[CartOrder, PackOrder], customer: Customer) -> PaymentForm:
        """
        Crée l'intention côté backend (montant autoritaire calculé par le backend) et monte l'UI hébergée.
        - Retry borné sur erreurs réseau transitoires (aucun débit possible à ce stade)
        - Une nouvelle tentative après SUCCEEDED/FAILED crée une nouvelle intention
        """
        if self.state in IN_FLIGHT_STATES:
            raise PreChargePaymentError("Un paiement est déjà en cours")
        self._reset()
        self.order = order
        self.customer = customer

        try:
            ids = await self._create_with_retry(order, customer)
            publishable_key = await repository.get_publishable_key(self._client, self.api_base_url)
            self.intent_id = ids["payment_intent_id"]
            self.client_secret = ids["client_secret"]
            self.form = await self._gateway.mount(
                self.intent_id, self.client_secret, publishable_key, order.display_amount
            )
        except NetworkError as e:
            logger.warning("payments.create_intent failed (%s)", e.message)
            return self._fail_pre_charge(f"Impossible d'initialiser le paiement: {e.message}")

        self.state = PaymentState.FORM_READY
        logger.info("payments.create_intent ready intent=%s amount=%s", self.intent_id, order.display_amount)
        return self.form

    async def _create_with_retry(self, order, customer: Customer) -> dict:
        attempts = self.create_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                if isinstance(order, CartOrder):
                    return await repository.create_cart_intent(
                        self._client,
                        self.api_base_url,
                        cart_items=order.items,
                        customer_email=customer.email,
                        customer_name=customer.name,
                        amount=order.display_amount,
                    )
                return await repository.create_pack_intent(
                    self._client,
                    self.api_base_url,
                    pack_id=order.pack_id,
                    customer_email=customer.email,
                    customer_name=customer.name,
                    amount=order.display_amount,
                )
            except NetworkError as e:
                transient = e.status_code is None or e.status_code >= 500
                if not transient or attempt == attempts:
                    raise
                logger.info("payments.create_intent retry %s/%s (%s)", attempt, attempts - 1, e.message)
                await asyncio.sleep(self.retry_backoff_seconds * attempt)
        raise NetworkError("create-intent: aucune tentative effectuée")

    # --- étape 2: confirmation gateway ---

    async def confirm_payment(self, payment_method: Optional[str] = None) -> CheckoutResult:
        """
        Confirme le paiement via la passerelle puis règle côté backend.
        - erreur gateway => FAILED rejouable, message de la passerelle
        - succeeded => CONFIRMING puis règlement
        - 'payment_intent_unexpected_state' sur une intention déjà réussie => règlement (pas une erreur)
        """
        if self.state in IN_FLIGHT_STATES:
            raise PreChargePaymentError("Un paiement est déjà en cours")
        if self.state == PaymentState.SUCCEEDED and self.result:
            return self.result
        if self._charged:
            raise self.last_error or PostChargeUnsettledError(self.intent_id or "")
        if not self.form or not self.intent_id:
            raise PreChargePaymentError("Système de paiement non initialisé")

        self.state = PaymentState.PROCESSING
        self.last_error = None

        # Double soumission (rechargement, autre onglet): l'intention peut déjà être réglée côté gateway
        if await self._intent_succeeded():
            return await self._settle_after_charge()

        try:
            outcome = await asyncio.wait_for(
                self._gateway.confirm_payment(self.intent_id, payment_method=payment_method),
                timeout=self.confirm_timeout_seconds,
            )
        except asyncio.TimeoutError:
            if await self._intent_succeeded():
                return await self._settle_after_charge()
            return self._fail_pre_charge("Délai de confirmation dépassé, veuillez réessayer")
        except Exception as e:
            logger.exception("payments.confirm_payment gateway call failed intent=%s", self.intent_id)
            if await self._intent_succeeded():
                return await self._settle_after_charge()
            return self._fail_pre_charge(f"Erreur inattendue de la passerelle: {e}")

        if outcome.error:
            if outcome.error.code == UNEXPECTED_STATE_CODE and await self._intent_succeeded():
                logger.info("payments.confirm_payment intent=%s déjà confirmée, règlement", self.intent_id)
                return await self._settle_after_charge()
            return self._fail_pre_charge(outcome.error.message or "Paiement refusé")

        status = outcome.intent.status if outcome.intent else ""
        if status == IntentStatus.SUCCEEDED.value:
            return await self._settle_after_charge()
        if status == IntentStatus.PROCESSING.value:
            # Une nouvelle soumission relira le statut avant toute confirmation
            return self._fail_pre_charge("Paiement en cours de traitement, réessayez dans un instant")
        return self._fail_pre_charge(f"Paiement non confirmé (status={status or 'inconnu'})")

    async def _intent_succeeded(self) -> bool:
        try:
            intent = await self._gateway.retrieve_payment_intent(self.intent_id)
        except Exception:
            logger.warning("payments: statut de l'intention %s indisponible", self.intent_id, exc_info=True)
            return False
        return intent.succeeded

    def _fail_pre_charge(self, message: str):
        self.state = PaymentState.FAILED
        self.last_error = PreChargePaymentError(message)
        raise self.last_error

    async def _settle_after_charge(self) -> CheckoutResult:
        self._charged = True
        self.state = PaymentState.CONFIRMING
        return await self.settle_with_backend(self.intent_id)

    # --- étape 3: règlement backend ---

    async def settle_with_backend(self, intent_id: str) -> CheckoutResult:
        """
        Informe le backend de l'intention confirmée et récupère la commande.
        - Sûr à répéter côté backend (déduplication par intent_id); jamais rappelé une fois SUCCEEDED
        - Succès: vide le panier (checkout panier), persiste la commande, SUCCEEDED, redirection
        - Échec: PostChargeUnsettledError, sans retry automatique
        """
        if self.state == PaymentState.SUCCEEDED and self.result:
            return self.result
        if not self.order or not self.customer:
            raise PreChargePaymentError("Aucune commande en cours")

        self.state = PaymentState.CONFIRMING
        self.settlement_calls += 1
        try:
            if isinstance(self.order, CartOrder):
                raw_order = await repository.confirm_cart(
                    self._client,
                    self.api_base_url,
                    payment_intent_id=intent_id,
                    cart_items=self.order.items,
                    customer_email=self.customer.email,
                    customer_name=self.customer.name,
                )
            else:
                raw_order = await repository.confirm_pack(
                    self._client,
                    self.api_base_url,
                    payment_intent_id=intent_id,
                    pack_id=self.order.pack_id,
                    customer_email=self.customer.email,
                    customer_name=self.customer.name,
                )
            order = Order.model_validate(raw_order)
        except Exception:
            logger.exception("payments.settle_with_backend failed after charge intent=%s", intent_id)
            self._charged = True
            self.state = PaymentState.FAILED
            self.last_error = PostChargeUnsettledError(intent_id)
            raise self.last_error

        if isinstance(self.order, CartOrder):
            if self._cart is not None:
                self._cart.clear()
            self._persist_order(LAST_CART_ORDER_KEY, order)
            redirect_to = f"{self.cart_success_path}?order_id={order.id}"
        else:
            self._persist_order(LAST_PACK_ORDER_KEY, order)
            redirect_to = f"{self.pack_success_path}?order_id={order.id}"

        self.state = PaymentState.SUCCEEDED
        self.result = CheckoutResult(order=order, redirect_to=redirect_to)
        logger.info("payments.settle_with_backend ok intent=%s order=%s", intent_id, order.id)
        return self.result

    def _persist_order(self, key: str, order: Order) -> None:
        try:
            write_json(self._storage, key, order.model_dump())
        except Exception:
            # La commande existe côté backend; la page de confirmation relit order_id depuis l'URL
            logger.exception("payments: persistance locale de la commande %s impossible", order.id)
