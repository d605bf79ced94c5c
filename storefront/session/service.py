"""
Cas d'usage 'session': session admin à expiration absolue (24h par défaut).
- login: stratégie configurée -> Session persistée -> notification 'login'
- check_existing_session: restaure, expire ou purge la session persistée
- authenticated_request: un 401 purge la session et lève SessionExpiredError
- Synchronisation inter-onglets via les notifications du store (clé admin_token)
"""
from typing import Any, Callable, Dict, Optional
import asyncio
import logging
import time

import httpx

from storefront import config
from storefront.errors import AuthError, NetworkError, SessionExpiredError
from storefront.events import AuthStateChanged, EventBus
from storefront.infra.http_client import send
from storefront.storage import KeyValueStore, StorageChange
from storefront.storage.keys import ADMIN_TOKEN_KEY

from . import repository
from .models import AuthResponse, Session, handle_exception
from .strategies import AuthStrategy

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionManager:
    def __init__(
        self,
        storage: KeyValueStore,
        strategy: AuthStrategy,
        client: httpx.AsyncClient,
        events: Optional[EventBus] = None,
        clock: Callable[[], int] = _now_ms,
        ttl_hours: int = config.SESSION_TTL_HOURS,
        check_interval_seconds: float = config.SESSION_CHECK_INTERVAL_SECONDS,
        login_path: str = config.ADMIN_LOGIN_PATH,
    ):
        self._storage = storage
        self._strategy = strategy
        self._client = client
        self._events = events if events is not None else EventBus()
        self._clock = clock
        self.ttl_hours = ttl_hours
        self.check_interval_seconds = check_interval_seconds
        self.login_path = login_path
        self._session: Optional[Session] = None
        self._unsubscribe = storage.subscribe(self._on_storage_change)
        repository.purge_legacy_demo_session(storage)
        self.check_existing_session()

    # --- état observable ---

    @property
    def is_logged_in(self) -> bool:
        return self._session is not None and self._session.is_valid_at(self._clock())

    @property
    def current_user(self) -> Optional[Dict[str, Any]]:
        return dict(self._session.user) if self.is_logged_in else None

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self.is_logged_in else None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    def get_auth_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def protect_route(self) -> Optional[str]:
        """None si authentifié, sinon le chemin de connexion vers lequel rediriger."""
        if self.check_existing_session():
            return None
        return self.login_path

    # --- login / logout ---

    async def login(self, email: str, password: str) -> AuthResponse:
        try:
            token, user = await self._strategy.authenticate(email, password)
        except AuthError as e:
            logger.info("session.login refusé (%s) strategy=%s", e.message, self._strategy.name)
            return AuthResponse(False, error=e.message)
        except NetworkError as e:
            logger.warning("session.login backend injoignable (%s)", e.message)
            return AuthResponse(False, error="Service d'authentification indisponible")
        except Exception as e:
            return handle_exception("lors de la connexion", e)

        session = Session.issue(token, user, self._clock(), self.ttl_hours)
        self._session = session
        repository.write_session(self._storage, session)
        logger.info("session.login ok user=%s", user.get("email"))
        self._emit("login")
        return AuthResponse(True, user=dict(user), session=session)

    def logout(self) -> None:
        was_authenticated = self._session is not None
        self._session = None
        repository.clear_session(self._storage)
        if was_authenticated:
            logger.info("session.logout")
        self._emit("logout")

    # --- vérification ---

    def check_existing_session(self) -> bool:
        """
        Relit la session persistée et met l'état en mémoire à jour.
        - absente: ANONYMOUS, rien à purger
        - malformée ou expirée (now >= expires_at): purgée, notification 'expired'
        - valide: AUTHENTICATED (notification 'restored' si l'état change)
        """
        was_authenticated = self._session is not None
        session, corrupted = repository.read_session(self._storage, self.ttl_hours)

        if corrupted:
            logger.warning("session: session persistée malformée, purge")
            self._purge("expired" if was_authenticated else None)
            return False
        if session is None:
            self._session = None
            if was_authenticated:
                # Déconnexion effectuée par un autre contexte
                self._emit("logout")
            return False
        if not session.is_valid_at(self._clock()):
            logger.info("session: session expirée (expires_at=%s)", session.expires_at)
            self._purge("expired")
            return False

        changed = self._session != session
        self._session = session
        if changed:
            self._emit("restored")
        return True

    async def run_expiry_checks(self, stop_event: asyncio.Event, interval: Optional[float] = None) -> None:
        """Vérifie périodiquement l'expiration jusqu'à ce que stop_event soit positionné."""
        interval = self.check_interval_seconds if interval is None else interval
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                if self._session is None:
                    continue
                try:
                    self.check_existing_session()
                except Exception:
                    logger.exception("session: vérification périodique en échec")

    # --- requêtes authentifiées ---

    async def authenticated_request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Envoie une requête portant le token courant.
        - pas de session valide: SessionExpiredError, sans appel réseau
        - 401: purge de la session, notification 'invalidated', SessionExpiredError
        """
        if not self.check_existing_session():
            raise SessionExpiredError(redirect_to=self.login_path)

        headers = self.get_auth_headers()
        headers.update(kwargs.pop("headers", None) or {})
        response = await send(self._client, method, url, headers=headers, **kwargs)

        if response.status_code == 401:
            logger.warning("session: 401 sur %s %s, session invalidée", method, url)
            self._purge("invalidated")
            raise SessionExpiredError(redirect_to=self.login_path)
        return response

    def close(self) -> None:
        self._unsubscribe()

    # --- interne ---

    def _purge(self, event_type: Optional[str]) -> None:
        self._session = None
        repository.clear_session(self._storage)
        if event_type:
            self._emit(event_type)

    def _emit(self, event_type: str) -> None:
        self._events.emit_auth_state_changed(
            AuthStateChanged(
                type=event_type,
                is_authenticated=self._session is not None,
                user=dict(self._session.user) if self._session else None,
            )
        )

    def _on_storage_change(self, change: StorageChange) -> None:
        if change.key == ADMIN_TOKEN_KEY:
            self.check_existing_session()
