import asyncio
import json

import httpx
import jwt
import pytest

from storefront.errors import SessionExpiredError
from storefront.events import EventBus
from storefront.session import BackendAuthStrategy, DemoAuthStrategy, SessionManager, build_auth_strategy
from storefront.session.passwords import hash_password, verify_password
from storefront.storage.keys import ADMIN_TOKEN_EXPIRY_KEY, ADMIN_TOKEN_KEY, ADMIN_USER_KEY, DEMO_SESSION_KEY

API = "http://api.test/api"
DAY_MS = 24 * 60 * 60 * 1000
SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture
def auth_events(events):
    seen = []
    events.on_auth_state_changed(seen.append)
    return seen


@pytest.fixture
def login_api(api):
    return api.on(
        "POST",
        "/api/admin/login",
        {"success": True, "token": "tok", "user": {"email": "admin@kvgarage.com", "name": "Admin"}},
    )


def _manager(storage, http_client, events, clock, strategy=None):
    return SessionManager(
        storage,
        strategy or BackendAuthStrategy(http_client, api_base_url=API),
        http_client,
        events=events,
        clock=clock,
        ttl_hours=24,
        login_path="/admin/",
    )


@pytest.mark.asyncio
async def test_login_persists_session(storage, http_client, events, clock, login_api, auth_events):
    manager = _manager(storage, http_client, events, clock)
    result = await manager.login("admin@kvgarage.com", "admin123")

    assert result.success is True
    assert result.access_token == "tok"
    assert manager.is_logged_in is True
    assert manager.current_user == {"email": "admin@kvgarage.com", "name": "Admin"}
    assert storage.get_item(ADMIN_TOKEN_KEY) == "tok"
    assert json.loads(storage.get_item(ADMIN_USER_KEY))["email"] == "admin@kvgarage.com"
    assert storage.get_item(ADMIN_TOKEN_EXPIRY_KEY) == str(clock.now + DAY_MS)
    assert login_api.body(-1) == {"email": "admin@kvgarage.com", "password": "admin123"}
    assert [e.type for e in auth_events] == ["login"]
    assert auth_events[0].is_authenticated is True


@pytest.mark.asyncio
async def test_expiry_boundary(storage, http_client, events, clock, login_api, auth_events):
    manager = _manager(storage, http_client, events, clock)
    await manager.login("admin@kvgarage.com", "admin123")

    clock.advance(DAY_MS - 1)
    assert manager.check_existing_session() is True
    assert manager.token == "tok"

    clock.advance(2)
    assert manager.is_logged_in is False
    assert manager.check_existing_session() is False
    assert storage.get_item(ADMIN_TOKEN_KEY) is None
    assert storage.get_item(ADMIN_USER_KEY) is None
    assert storage.get_item(ADMIN_TOKEN_EXPIRY_KEY) is None
    assert auth_events[-1].type == "expired"
    assert auth_events[-1].is_authenticated is False


@pytest.mark.asyncio
async def test_session_invalid_exactly_at_expiry(storage, http_client, events, clock, login_api):
    manager = _manager(storage, http_client, events, clock)
    await manager.login("admin@kvgarage.com", "admin123")
    clock.advance(DAY_MS)
    assert manager.check_existing_session() is False


@pytest.mark.asyncio
async def test_expiry_is_not_extended_by_activity(storage, http_client, events, clock, login_api, api):
    api.on("GET", "/api/admin/orders", {"orders": []})
    manager = _manager(storage, http_client, events, clock)
    await manager.login("admin@kvgarage.com", "admin123")
    expiry = storage.get_item(ADMIN_TOKEN_EXPIRY_KEY)
    clock.advance(DAY_MS // 2)
    await manager.authenticated_request("GET", f"{API}/admin/orders")
    assert storage.get_item(ADMIN_TOKEN_EXPIRY_KEY) == expiry


@pytest.mark.asyncio
async def test_rejected_credentials(storage, http_client, events, clock, api):
    api.on("POST", "/api/admin/login", httpx.Response(401, json={"success": False, "error": "Invalid"}))
    manager = _manager(storage, http_client, events, clock)
    result = await manager.login("admin@kvgarage.com", "wrong")
    assert result.success is False
    assert result.error == "Identifiants invalides"
    assert storage.get_item(ADMIN_TOKEN_KEY) is None
    assert manager.is_logged_in is False


@pytest.mark.asyncio
async def test_backend_unreachable(storage, http_client, events, clock, api):
    def down(request):
        raise httpx.ConnectError("refused", request=request)

    api.on("POST", "/api/admin/login", down)
    manager = _manager(storage, http_client, events, clock)
    result = await manager.login("admin@kvgarage.com", "admin123")
    assert result.success is False
    assert result.error == "Service d'authentification indisponible"


@pytest.mark.asyncio
async def test_login_without_token(storage, http_client, events, clock, api):
    api.on("POST", "/api/admin/login", {"success": True})
    manager = _manager(storage, http_client, events, clock)
    result = await manager.login("admin@kvgarage.com", "admin123")
    assert result.success is False
    assert result.error == "Aucun token reçu"


@pytest.mark.asyncio
async def test_login_accepts_nested_token(storage, http_client, events, clock, api):
    api.on("POST", "/api/admin/login", {"data": {"token": "nested"}})
    manager = _manager(storage, http_client, events, clock)
    result = await manager.login("admin@kvgarage.com", "admin123")
    assert result.success is True
    assert manager.token == "nested"
    assert manager.current_user == {"email": "admin@kvgarage.com", "name": "Admin User"}


@pytest.mark.asyncio
async def test_authenticated_request_sends_bearer(storage, http_client, events, clock, login_api, api):
    api.on("GET", "/api/admin/orders", {"orders": [1]})
    manager = _manager(storage, http_client, events, clock)
    await manager.login("admin@kvgarage.com", "admin123")
    response = await manager.authenticated_request("GET", f"{API}/admin/orders", headers={"X-Trace": "1"})
    assert response.json() == {"orders": [1]}
    sent = api.calls[-1]
    assert sent.headers["authorization"] == "Bearer tok"
    assert sent.headers["x-trace"] == "1"


@pytest.mark.asyncio
async def test_unauthorized_response_purges_session(storage, http_client, events, clock, login_api, api, auth_events):
    api.on("GET", "/api/admin/orders", httpx.Response(401, json={"error": "expired"}))
    manager = _manager(storage, http_client, events, clock)
    await manager.login("admin@kvgarage.com", "admin123")

    with pytest.raises(SessionExpiredError) as exc:
        await manager.authenticated_request("GET", f"{API}/admin/orders")
    assert exc.value.redirect_to == "/admin/"
    assert manager.is_logged_in is False
    assert storage.get_item(ADMIN_TOKEN_KEY) is None
    assert auth_events[-1].type == "invalidated"


@pytest.mark.asyncio
async def test_authenticated_request_without_session(storage, http_client, events, clock, api):
    manager = _manager(storage, http_client, events, clock)
    with pytest.raises(SessionExpiredError):
        await manager.authenticated_request("GET", f"{API}/admin/orders")
    assert api.calls == []


@pytest.mark.asyncio
async def test_cross_context_login_and_logout(storage, http_client, events, clock, login_api, auth_events):
    manager = _manager(storage, http_client, events, clock)
    other_seen = []
    other_events = EventBus()
    other_events.on_auth_state_changed(other_seen.append)
    other_tab = _manager(storage.sibling(), http_client, other_events, clock)
    assert other_tab.is_logged_in is False

    await manager.login("admin@kvgarage.com", "admin123")
    assert other_tab.is_logged_in is True
    assert other_tab.current_user["email"] == "admin@kvgarage.com"

    manager.logout()
    assert other_tab.is_logged_in is False
    assert [e.type for e in other_seen] == ["restored", "logout"]
    assert [e.type for e in auth_events] == ["login", "logout"]


def test_restores_persisted_session(storage, http_client, events, clock, auth_events):
    storage.set_item(ADMIN_USER_KEY, json.dumps({"email": "a@example.com", "name": "A"}))
    storage.set_item(ADMIN_TOKEN_EXPIRY_KEY, str(clock.now + 1000))
    storage.set_item(ADMIN_TOKEN_KEY, "persisted")
    manager = _manager(storage, http_client, events, clock)
    assert manager.is_logged_in is True
    assert manager.get_auth_headers()["Authorization"] == "Bearer persisted"
    assert manager.protect_route() is None
    assert [e.type for e in auth_events] == ["restored"]


def test_malformed_session_is_purged(storage, http_client, events, clock):
    storage.set_item(ADMIN_USER_KEY, "{broken")
    storage.set_item(ADMIN_TOKEN_EXPIRY_KEY, "abc")
    storage.set_item(ADMIN_TOKEN_KEY, "t")
    manager = _manager(storage, http_client, events, clock)
    assert manager.is_logged_in is False
    assert list(storage.keys()) == []


def test_absent_token_is_anonymous_without_purge(storage, http_client, events, clock):
    storage.set_item(ADMIN_USER_KEY, json.dumps({"email": "a@example.com"}))
    manager = _manager(storage, http_client, events, clock)
    assert manager.is_logged_in is False
    assert manager.protect_route() == "/admin/"
    assert "Authorization" not in manager.get_auth_headers()
    assert storage.get_item(ADMIN_USER_KEY) is not None


def test_legacy_demo_session_is_discarded(storage, http_client, events, clock):
    storage.set_item(DEMO_SESSION_KEY, json.dumps({"token": "demo_123", "expires": clock.now + 1000}))
    manager = _manager(storage, http_client, events, clock)
    assert storage.get_item(DEMO_SESSION_KEY) is None
    assert manager.is_logged_in is False


@pytest.mark.asyncio
async def test_periodic_check_expires_session(storage, http_client, events, clock, login_api, auth_events):
    manager = _manager(storage, http_client, events, clock)
    await manager.login("admin@kvgarage.com", "admin123")
    stop = asyncio.Event()
    task = asyncio.create_task(manager.run_expiry_checks(stop, interval=0.01))

    clock.advance(DAY_MS + 1)
    for _ in range(100):
        if storage.get_item(ADMIN_TOKEN_KEY) is None:
            break
        await asyncio.sleep(0.01)
    stop.set()
    await task

    assert storage.get_item(ADMIN_TOKEN_KEY) is None
    assert auth_events[-1].type == "expired"


@pytest.fixture
def demo_hash():
    return hash_password("admin123", rounds=4)


@pytest.mark.asyncio
async def test_demo_strategy_issues_signed_token(storage, http_client, events, clock, demo_hash, api):
    strategy = DemoAuthStrategy(email="admin@kvgarage.com", password_hash=demo_hash, secret=SECRET)
    manager = _manager(storage, http_client, events, clock, strategy=strategy)
    result = await manager.login("Admin@KVGarage.com ", "admin123")

    assert result.success is True
    claims = jwt.decode(manager.token, SECRET, algorithms=["HS256"])
    assert claims["sub"] == "admin@kvgarage.com"
    assert claims["demo"] is True
    assert manager.current_user == {"email": "admin@kvgarage.com", "name": "Admin User"}
    assert storage.get_item(ADMIN_TOKEN_EXPIRY_KEY) == str(clock.now + DAY_MS)
    assert api.calls == []


@pytest.mark.asyncio
async def test_demo_strategy_rejects_wrong_password(storage, http_client, events, clock, demo_hash):
    strategy = DemoAuthStrategy(email="admin@kvgarage.com", password_hash=demo_hash, secret=SECRET)
    manager = _manager(storage, http_client, events, clock, strategy=strategy)
    result = await manager.login("admin@kvgarage.com", "nope")
    assert result.success is False
    assert result.error == "Identifiants invalides"


@pytest.mark.asyncio
async def test_demo_strategy_requires_configuration(storage, http_client, events, clock):
    strategy = DemoAuthStrategy(email="", password_hash="", secret=SECRET)
    manager = _manager(storage, http_client, events, clock, strategy=strategy)
    result = await manager.login("admin@kvgarage.com", "admin123")
    assert result.success is False
    assert "non configurée" in result.error


@pytest.mark.asyncio
async def test_demo_strategy_with_invalid_hash(storage, http_client, events, clock):
    strategy = DemoAuthStrategy(email="admin@kvgarage.com", password_hash="admin123", secret=SECRET)
    manager = _manager(storage, http_client, events, clock, strategy=strategy)
    result = await manager.login("admin@kvgarage.com", "admin123")
    assert result.success is False


def test_build_auth_strategy(http_client):
    assert isinstance(build_auth_strategy("backend", http_client), BackendAuthStrategy)
    assert isinstance(build_auth_strategy(" Demo ", http_client), DemoAuthStrategy)
    with pytest.raises(ValueError):
        build_auth_strategy("both", http_client)


def test_password_hash_roundtrip(demo_hash):
    assert demo_hash.startswith("$2")
    assert verify_password("admin123", demo_hash) is True
    assert verify_password("admin124", demo_hash) is False


@pytest.mark.asyncio
async def test_periodic_check_survives_storage_errors(monkeypatch, storage, http_client, events, clock, login_api, auth_events):
    manager = _manager(storage, http_client, events, clock)
    await manager.login("admin@kvgarage.com", "admin123")

    original_get_item = storage.get_item
    failures = {"left": 2}

    def flaky_get_item(key):
        if failures["left"] > 0:
            failures["left"] -= 1
            raise RuntimeError("stockage indisponible")
        return original_get_item(key)

    monkeypatch.setattr(storage, "get_item", flaky_get_item)
    clock.advance(DAY_MS + 1)
    stop = asyncio.Event()
    task = asyncio.create_task(manager.run_expiry_checks(stop, interval=0.01))

    for _ in range(100):
        if original_get_item(ADMIN_TOKEN_KEY) is None:
            break
        await asyncio.sleep(0.01)
    assert task.done() is False
    stop.set()
    await task

    assert failures["left"] == 0
    assert original_get_item(ADMIN_TOKEN_KEY) is None
    assert auth_events[-1].type == "expired"
