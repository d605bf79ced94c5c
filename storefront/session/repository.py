"""
Persistance de la session admin: clés admin_token, admin_user (JSON), admin_token_expiry (epoch ms).
Ordre d'écriture: utilisateur, expiration, puis token en dernier (un autre contexte qui voit
le token voit donc une session complète).
"""
from typing import Optional, Tuple
import json
import logging

from storefront.storage import KeyValueStore
from storefront.storage.keys import (
    ADMIN_TOKEN_EXPIRY_KEY,
    ADMIN_TOKEN_KEY,
    ADMIN_USER_KEY,
    DEMO_SESSION_KEY,
)

from .models import HOUR_MS, Session

logger = logging.getLogger(__name__)


# module storefront.session.repository
def read_session(storage: KeyValueStore, ttl_hours: int) -> Tuple[Optional[Session], bool]:
    """
    Relit la session persistée.
    - (None, False): aucune session (token absent), pas une erreur
    - (None, True): session présente mais malformée, à purger
    - (Session, False): session lisible (validité temporelle à vérifier par l'appelant)
    """
    token = storage.get_item(ADMIN_TOKEN_KEY)
    if not token:
        return None, False
    raw_user = storage.get_item(ADMIN_USER_KEY)
    raw_expiry = storage.get_item(ADMIN_TOKEN_EXPIRY_KEY)
    try:
        user = json.loads(raw_user) if raw_user else None
        expires_at = int(raw_expiry) if raw_expiry else None
    except ValueError:
        logger.warning("session.repository: session persistée illisible")
        return None, True
    if not isinstance(user, dict) or expires_at is None:
        return None, True
    return Session(token=token, user=user, issued_at=expires_at - ttl_hours * HOUR_MS, expires_at=expires_at), False


def write_session(storage: KeyValueStore, session: Session) -> None:
    storage.set_item(ADMIN_USER_KEY, json.dumps(session.user))
    storage.set_item(ADMIN_TOKEN_EXPIRY_KEY, str(session.expires_at))
    storage.set_item(ADMIN_TOKEN_KEY, session.token)


def clear_session(storage: KeyValueStore) -> None:
    storage.remove_item(ADMIN_TOKEN_KEY)
    storage.remove_item(ADMIN_USER_KEY)
    storage.remove_item(ADMIN_TOKEN_EXPIRY_KEY)


def purge_legacy_demo_session(storage: KeyValueStore) -> bool:
    """Supprime le blob de l'ancien portier démo: seule la stratégie configurée fait foi."""
    if storage.get_item(DEMO_SESSION_KEY) is None:
        return False
    storage.remove_item(DEMO_SESSION_KEY)
    logger.info("session.repository: ancienne session démo supprimée")
    return True
