import httpx
import pytest
from fastapi.testclient import TestClient

from storefront.app_setup.factory import create_app
from storefront.services import build_services
from storefront.session import DemoAuthStrategy
from storefront.session.passwords import hash_password
from storefront.storage import MemoryStorage

API = "http://api.test/api"


@pytest.fixture
def services(http_client, gateway, checkout_api):
    password_hash = hash_password("admin123", rounds=4)
    strategy = DemoAuthStrategy(
        email="admin@kvgarage.com",
        password_hash=password_hash,
        secret="integration-secret-with-enough-length",
    )
    return build_services(
        storage=MemoryStorage(),
        client=http_client,
        gateway=gateway,
        strategy=strategy,
        api_base_url=API,
    )


@pytest.fixture
def client(services):
    app = create_app(services)
    with TestClient(app) as c:
        yield c


CUSTOMER = {"email": "client@example.com", "name": "Client Test"}


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["auth_strategy"] == "demo"
    assert body["storage"] == "MemoryStorage"


def test_cart_crud(client):
    res = client.post("/api/v1/cart/items", json={"id": "a", "name": "Pack A", "price": 10})
    assert res.status_code == 201
    client.post("/api/v1/cart/items", json={"id": "a", "name": "Pack A", "price": 10})
    client.post("/api/v1/cart/items", json={"id": "c", "name": "C", "price": 0})

    cart = client.get("/api/v1/cart").json()
    assert cart["total_items"] == 3
    assert cart["total_price"] == 20.0
    assert res.headers["cache-control"] == "no-store"

    res = client.delete("/api/v1/cart/items/c")
    assert res.json()["removed"] is True
    res = client.delete("/api/v1/cart/items/zzz")
    assert res.status_code == 200
    assert res.json()["removed"] is False

    assert client.delete("/api/v1/cart").json()["total_items"] == 0


def test_invalid_cart_item_is_rejected(client):
    res = client.post("/api/v1/cart/items", json={"id": "a", "price": "abc"})
    assert res.status_code == 400
    assert "données requises manquantes" in res.json()["detail"]
    assert client.get("/api/v1/cart").json()["items"] == []


def test_catalog_falls_back_to_bundled_snapshot(client, checkout_api):
    res = client.get("/api/v1/catalog/packs")
    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 3
    assert {p["id"] for p in body["items"]} == {"starter-pack", "reseller-pack", "pro-pack"}

    active = client.get("/api/v1/catalog/packs", params={"status": "active"}).json()
    assert active["count"] == 2


def test_catalog_uses_api_when_available(client, checkout_api):
    checkout_api.on("GET", "/api/products", {"data": [{"id": 9, "name": "Live", "price": 3}]})
    body = client.get("/api/v1/catalog/products").json()
    assert body["items"][0]["id"] == "9"


def test_catalog_item_lookup(client):
    res = client.get("/api/v1/catalog/packs/pro-pack")
    assert res.status_code == 200
    assert res.json()["units"] == 700
    assert client.get("/api/v1/catalog/packs/missing").status_code == 404
    assert client.get("/api/v1/catalog/tickets").status_code == 404


def test_cart_checkout_flow(client, checkout_api):
    client.post("/api/v1/cart/items", json={"id": "a", "name": "Pack A", "price": 10})
    res = client.post("/api/v1/checkout/intent", json={"kind": "cart", "customer": CUSTOMER})
    assert res.status_code == 200
    body = res.json()
    assert body["form"]["intent_id"] == "pi_123"
    assert body["state"]["state"] == "FORM_READY"
    assert body["state"]["submit_enabled"] is True

    res = client.post("/api/v1/checkout/confirm", json={"payment_method": "pm_card_visa"})
    assert res.status_code == 200
    assert res.json()["order"]["id"] == "42"
    assert res.json()["redirect_to"].endswith("?order_id=42")

    state = client.get("/api/v1/checkout/state").json()
    assert state["state"] == "SUCCEEDED"
    assert client.get("/api/v1/cart").json()["items"] == []


def test_checkout_with_empty_cart(client):
    res = client.post("/api/v1/checkout/intent", json={"kind": "cart", "customer": CUSTOMER})
    assert res.status_code == 400
    assert res.json()["detail"] == "Panier vide"


def test_pack_checkout_requires_pack(client):
    res = client.post("/api/v1/checkout/intent", json={"kind": "pack", "customer": CUSTOMER})
    assert res.status_code == 400


def test_declined_payment_is_retryable(client, gateway):
    client.post("/api/v1/cart/items", json={"id": "a", "name": "Pack A", "price": 10})
    client.post("/api/v1/checkout/intent", json={"kind": "cart", "customer": CUSTOMER})
    gateway.fail("Votre carte a été refusée.", code="card_declined")

    res = client.post("/api/v1/checkout/confirm", json={})
    assert res.status_code == 402
    assert res.json() == {"detail": "Votre carte a été refusée.", "retryable": True}


def test_unsettled_payment_points_to_support(client, checkout_api):
    checkout_api.on("POST", "/api/payments/confirm-cart", httpx.Response(500))
    client.post("/api/v1/cart/items", json={"id": "a", "name": "Pack A", "price": 10})
    client.post("/api/v1/checkout/intent", json={"kind": "cart", "customer": CUSTOMER})

    res = client.post("/api/v1/checkout/confirm", json={})
    assert res.status_code == 409
    body = res.json()
    assert body["retryable"] is False
    assert body["support"] is True
    assert body["intent_id"] == "pi_123"
    assert len(client.get("/api/v1/cart").json()["items"]) == 1


def test_admin_login_session_logout(client):
    assert client.get("/api/v1/admin/session").json()["authenticated"] is False

    res = client.post("/api/v1/admin/login", json={"email": "admin@kvgarage.com", "password": "admin123"})
    assert res.status_code == 200
    assert res.json()["token_type"] == "bearer"
    assert res.json()["user"]["email"] == "admin@kvgarage.com"

    session = client.get("/api/v1/admin/session").json()
    assert session["authenticated"] is True
    assert session["redirect_to"] is None

    client.post("/api/v1/admin/logout")
    session = client.get("/api/v1/admin/session").json()
    assert session["authenticated"] is False
    assert session["redirect_to"]


def test_admin_login_rejected(client):
    res = client.post("/api/v1/admin/login", json={"email": "admin@kvgarage.com", "password": "nope"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Identifiants invalides"


def test_admin_login_validates_email(client):
    res = client.post("/api/v1/admin/login", json={"email": "not-an-email", "password": "x"})
    assert res.status_code == 422
