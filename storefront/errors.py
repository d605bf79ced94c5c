"""
Taxonomie des erreurs du storefront.
- Lecture: les erreurs réseau dégradent (fallback, état vide), jamais propagées à l'UI.
- Écriture: les erreurs sont remontées avec un texte actionnable.
- Paiement: distinction avant débit (rejouable) / après débit non réglé (contacter le support).
"""
from typing import Optional

from storefront.config import ADMIN_LOGIN_PATH


class StorefrontError(Exception):
    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    """Article de panier malformé, rejeté à la frontière sans mutation."""


class DataCorruptionError(StorefrontError):
    """Snapshot persisté malformé; récupéré par filtrage au chargement."""


class NetworkError(StorefrontError):
    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(StorefrontError):
    """Identifiants refusés ou session absente."""


class SessionExpiredError(AuthError):
    def __init__(self, message: str = "Session expirée, veuillez vous reconnecter", redirect_to: str = ADMIN_LOGIN_PATH):
        super().__init__(message)
        self.redirect_to = redirect_to


class PaymentError(StorefrontError):
    retryable = False


class PreChargePaymentError(PaymentError):
    """Échec avant tout débit: l'utilisateur peut réessayer."""
    retryable = True


class PostChargeUnsettledError(PaymentError):
    """
    Débit confirmé par la passerelle mais commande non enregistrée côté backend.
    - Jamais rejoué automatiquement (risque de double règlement).
    - Le message oriente l'utilisateur vers le support avec la référence du paiement.
    """
    retryable = False

    def __init__(self, intent_id: str, message: Optional[str] = None):
        super().__init__(
            message
            or f"Paiement reçu mais confirmation de commande impossible. Contactez le support avec la référence {intent_id}."
        )
        self.intent_id = intent_id
