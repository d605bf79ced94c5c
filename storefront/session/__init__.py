from .models import AuthResponse, Session
from .service import SessionManager
from .strategies import AuthStrategy, BackendAuthStrategy, DemoAuthStrategy, build_auth_strategy

__all__ = [
    "AuthResponse",
    "Session",
    "SessionManager",
    "AuthStrategy",
    "BackendAuthStrategy",
    "DemoAuthStrategy",
    "build_auth_strategy",
]
