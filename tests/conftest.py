import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from storefront.events import EventBus
from storefront.payments import GatewayError, GatewayResult, PaymentGateway, PaymentIntent
from storefront.storage import MemoryStorage

API = "http://api.test/api"


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


class FakeApi:
    """
    Backend simulé pour httpx.MockTransport.
    - routes: (méthode, chemin) -> réponse (dict/list JSON, httpx.Response ou callable(request))
    - calls: requêtes reçues, dans l'ordre
    """

    def __init__(self) -> None:
        self.routes: Dict[tuple, Any] = {}
        self.calls: List[httpx.Request] = []

    def on(self, method: str, path: str, response: Any) -> "FakeApi":
        self.routes[(method.upper(), path)] = response
        return self

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.calls if r.method == method.upper() and r.url.path == path)

    def body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.calls[index].content or b"{}")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(handler):
            handler = handler(request)
        if isinstance(handler, httpx.Response):
            return handler
        return httpx.Response(200, json=handler)


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def http_client(api):
    return httpx.AsyncClient(transport=httpx.MockTransport(api), timeout=5)


class FakeGateway(PaymentGateway):
    """
    Passerelle simulée.
    - status: statut renvoyé par retrieve (avant confirmation)
    - confirm_outcome: GatewayResult renvoyé par confirm, ou exception à lever
    - confirm passe le statut à 'succeeded' quand le résultat est un succès
    """

    def __init__(self) -> None:
        self.status = "requires_confirmation"
        self.confirm_outcome: Any = None
        self.confirm_calls = 0
        self.retrieve_calls = 0
        self.charge_on_error = False

    def succeed(self) -> "FakeGateway":
        self.confirm_outcome = None
        return self

    def fail(self, message: str, code: Optional[str] = None) -> "FakeGateway":
        self.confirm_outcome = GatewayResult(error=GatewayError(message=message, code=code))
        return self

    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        self.retrieve_calls += 1
        return PaymentIntent(id=intent_id, client_secret="secret", status=self.status)

    async def confirm_payment(self, intent_id, payment_method=None, return_url=None) -> GatewayResult:
        self.confirm_calls += 1
        outcome = self.confirm_outcome
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome(intent_id)
        if outcome is None:
            self.status = "succeeded"
            return GatewayResult(intent=PaymentIntent(id=intent_id, client_secret="secret", status="succeeded"))
        if self.charge_on_error:
            self.status = "succeeded"
        return outcome


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


def backend_routes(api: FakeApi, order_id: Any = 42) -> FakeApi:
    """Routes backend d'un checkout nominal (création d'intention, clé publique, règlement)."""
    intent = {"payment_intent_id": "pi_123", "client_secret": "pi_123_secret"}
    order = {"success": True, "order": {"id": order_id, "status": "paid"}}
    return (
        api.on("GET", "/api/payments/config", {"publishable_key": "pk_test"})
        .on("POST", "/api/payments/create-cart-intent", intent)
        .on("POST", "/api/payments/create-intent", intent)
        .on("POST", "/api/payments/confirm-cart", order)
        .on("POST", "/api/payments/confirm", order)
    )


@pytest.fixture
def checkout_api(api) -> FakeApi:
    return backend_routes(api)


class Clock:
    """Horloge manuelle (millisecondes epoch)."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> Clock:
    return Clock()
