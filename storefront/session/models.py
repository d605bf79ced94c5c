from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class Session:
    token: str
    user: Dict[str, Any]
    issued_at: int
    expires_at: int

    @classmethod
    def issue(cls, token: str, user: Dict[str, Any], now_ms: int, ttl_hours: int) -> "Session":
        # Expiration absolue fixée à l'émission, jamais prolongée
        return cls(token=token, user=dict(user), issued_at=now_ms, expires_at=now_ms + ttl_hours * HOUR_MS)

    def is_valid_at(self, now_ms: int) -> bool:
        return now_ms < self.expires_at


class AuthResponse:
    def __init__(
        self,
        success: bool,
        user: Optional[Dict[str, Any]] = None,
        session: Optional[Session] = None,
        error: Optional[str] = None,
    ):
        self.success = success
        self.user = user
        self.session = session
        self.error = error

    @property
    def access_token(self):
        return self.session.token if self.session else None


def build_user_dict(raw: Any, email: str) -> Dict[str, Any]:
    """Normalise l'utilisateur renvoyé par la stratégie: toujours {email, name}."""
    raw = raw if isinstance(raw, dict) else {}
    user = dict(raw)
    user["email"] = raw.get("email") or email
    user["name"] = raw.get("name") or "Admin User"
    return user


def handle_exception(action: str, e: Exception) -> AuthResponse:
    logger.exception(f"Erreur {action}")
    return AuthResponse(False, error=f"Erreur {action}: {str(e)}")
