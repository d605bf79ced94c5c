"""
Stratégies d'authentification admin (une seule active, choisie par AUTH_STRATEGY).
- backend: POST /admin/login {email, password} -> {token, user}
- demo: identifiants configurés (hash bcrypt) et token signé localement (JWT HS256)
Les deux produisent la même session, persistée de la même façon par SessionManager.
"""
from typing import Any, Callable, Dict, Tuple
import logging
import time

import httpx
import jwt

from storefront import config
from storefront.errors import AuthError, NetworkError
from storefront.infra.http_client import request_json

from .models import build_user_dict
from .passwords import verify_password

logger = logging.getLogger(__name__)


class AuthStrategy:
    name = "abstract"

    async def authenticate(self, email: str, password: str) -> Tuple[str, Dict[str, Any]]:
        """Retourne (token, user) ou lève AuthError / NetworkError."""
        raise NotImplementedError


class BackendAuthStrategy(AuthStrategy):
    name = "backend"

    def __init__(self, client: httpx.AsyncClient, api_base_url: str = config.API_BASE_URL):
        self._client = client
        self.api_base_url = api_base_url.rstrip("/")

    async def authenticate(self, email: str, password: str) -> Tuple[str, Dict[str, Any]]:
        try:
            data = await request_json(
                self._client,
                "POST",
                f"{self.api_base_url}/admin/login",
                json={"email": email, "password": password},
            )
        except NetworkError as e:
            if e.status_code is not None and 400 <= e.status_code < 500:
                raise AuthError("Identifiants invalides") from e
            raise
        data = data if isinstance(data, dict) else {}
        nested = data.get("data") if isinstance(data.get("data"), dict) else {}
        token = data.get("token") or nested.get("token")
        if not token:
            raise AuthError("Aucun token reçu")
        user = build_user_dict(data.get("user") or nested.get("user"), email)
        return str(token), user


class DemoAuthStrategy(AuthStrategy):
    name = "demo"

    def __init__(
        self,
        email: str = config.ADMIN_DEMO_EMAIL,
        password_hash: str = config.ADMIN_DEMO_PASSWORD_HASH,
        secret: str = config.DEMO_TOKEN_SECRET,
        ttl_hours: int = config.SESSION_TTL_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        self.email = (email or "").strip().lower()
        self.password_hash = password_hash or ""
        self.secret = secret
        self.ttl_hours = ttl_hours
        self._clock = clock

    async def authenticate(self, email: str, password: str) -> Tuple[str, Dict[str, Any]]:
        if not self.email or not self.password_hash:
            raise AuthError("Authentification démo non configurée")
        email_ok = (email or "").strip().lower() == self.email
        try:
            password_ok = verify_password(password, self.password_hash)
        except ValueError:
            logger.error("session.demo: ADMIN_DEMO_PASSWORD_HASH n'est pas un hash bcrypt valide")
            password_ok = False
        if not (email_ok and password_ok):
            raise AuthError("Identifiants invalides")
        now = int(self._clock())
        token = jwt.encode(
            {"sub": self.email, "iat": now, "exp": now + self.ttl_hours * 3600, "demo": True},
            self.secret,
            algorithm="HS256",
        )
        return token, build_user_dict({"email": self.email}, self.email)


def build_auth_strategy(name: str, client: httpx.AsyncClient) -> AuthStrategy:
    """
    Sélectionne la stratégie configurée; un nom inconnu est une erreur de configuration
    (aucun choix implicite entre les deux portiers).
    """
    name = (name or "").strip().lower()
    if name == "backend":
        return BackendAuthStrategy(client)
    if name == "demo":
        return DemoAuthStrategy()
    raise ValueError(f"AUTH_STRATEGY inconnue: {name!r} (attendu: backend | demo)")
