"""
Conteneur des services du storefront (remplace les singletons globaux).
- Un client HTTP, un stockage et un bus d'événements partagés
- Un panier, un chargeur, un orchestrateur de paiement et un gestionnaire de session par contexte
- build_services() assemble le tout depuis la configuration; chaque pièce peut être injectée (tests)
"""
from dataclasses import dataclass, field
from typing import Optional
import logging

import httpx
from fastapi import Request

from storefront import config
from storefront.cart import CartStore
from storefront.catalog import DataLoader, TTLCache
from storefront.diagnostics import PerformanceCounters
from storefront.events import EventBus
from storefront.infra.http_client import build_http_client
from storefront.payments import PaymentGateway, PaymentOrchestrator, StripeGateway
from storefront.session import AuthStrategy, SessionManager, build_auth_strategy
from storefront.storage import KeyValueStore, build_storage

logger = logging.getLogger(__name__)


@dataclass
class Services:
    client: httpx.AsyncClient
    storage: KeyValueStore
    events: EventBus
    counters: PerformanceCounters
    cart: CartStore
    loader: DataLoader
    orchestrator: PaymentOrchestrator
    session: SessionManager
    owns_client: bool = field(default=True)

    async def aclose(self) -> None:
        self.cart.close()
        self.session.close()
        if self.owns_client:
            await self.client.aclose()
        close = getattr(self.storage, "close", None)
        if callable(close):
            close()


def build_services(
    storage: Optional[KeyValueStore] = None,
    client: Optional[httpx.AsyncClient] = None,
    gateway: Optional[PaymentGateway] = None,
    strategy: Optional[AuthStrategy] = None,
    events: Optional[EventBus] = None,
    api_base_url: str = config.API_BASE_URL,
) -> Services:
    """
    Assemble les services d'un contexte.
    - storage/client/gateway/strategy: injectables, sinon construits depuis la configuration
    - Lève ValueError si STORAGE_BACKEND ou AUTH_STRATEGY est inconnu
    """
    owns_client = client is None
    client = client if client is not None else build_http_client()
    storage = storage if storage is not None else build_storage()
    events = events if events is not None else EventBus()
    counters = PerformanceCounters(storage)

    cart = CartStore(storage, events)
    loader = DataLoader(
        client,
        api_base_url=api_base_url,
        cache=TTLCache(config.CACHE_TTL_SECONDS),
        data_dir=config.FALLBACK_DATA_DIR,
        fallback_base_url=config.FALLBACK_BASE_URL or None,
        counters=counters,
    )
    orchestrator = PaymentOrchestrator(
        client,
        gateway if gateway is not None else StripeGateway(),
        storage,
        cart=cart,
        api_base_url=api_base_url,
    )
    session = SessionManager(
        storage,
        strategy if strategy is not None else build_auth_strategy(config.AUTH_STRATEGY, client),
        client,
        events=events,
    )
    logger.info(
        "services ready storage=%s auth=%s api=%s",
        type(storage).__name__,
        session.strategy_name,
        api_base_url,
    )
    return Services(
        client=client,
        storage=storage,
        events=events,
        counters=counters,
        cart=cart,
        loader=loader,
        orchestrator=orchestrator,
        session=session,
        owns_client=owns_client,
    )


def get_services(request: Request) -> Services:
    """Dépendance FastAPI: services construits au démarrage (lifespan)."""
    return request.app.state.services
