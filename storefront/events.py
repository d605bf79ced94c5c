"""
Publication/abonnement explicite entre composants (remplace les événements globaux).
- on_cart_changed: payload CartChanged (articles, total articles, total prix)
- on_auth_state_changed: payload AuthStateChanged (type, authentifié, utilisateur)
Une exception dans un abonné est journalisée et n'interrompt pas la publication.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartChanged:
    items: List[Dict[str, Any]]
    total_items: int
    total_price: float


@dataclass(frozen=True)
class AuthStateChanged:
    type: str
    is_authenticated: bool
    user: Optional[Dict[str, Any]] = None


@dataclass
class EventBus:
    _cart_listeners: List[Callable[[CartChanged], None]] = field(default_factory=list)
    _auth_listeners: List[Callable[[AuthStateChanged], None]] = field(default_factory=list)

    def on_cart_changed(self, listener: Callable[[CartChanged], None]) -> Callable[[], None]:
        self._cart_listeners.append(listener)
        return lambda: self._remove(self._cart_listeners, listener)

    def on_auth_state_changed(self, listener: Callable[[AuthStateChanged], None]) -> Callable[[], None]:
        self._auth_listeners.append(listener)
        return lambda: self._remove(self._auth_listeners, listener)

    def emit_cart_changed(self, event: CartChanged) -> None:
        self._dispatch(self._cart_listeners, event)

    def emit_auth_state_changed(self, event: AuthStateChanged) -> None:
        self._dispatch(self._auth_listeners, event)

    @staticmethod
    def _remove(listeners: list, listener) -> None:
        if listener in listeners:
            listeners.remove(listener)

    @staticmethod
    def _dispatch(listeners: list, event) -> None:
        for listener in list(listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("events listener failed event=%s", type(event).__name__)
