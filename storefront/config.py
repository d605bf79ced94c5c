# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Expose l'URL de l'API backend et la source statique de secours (snapshots JSON)
- Fixe les durées (cache 5 min, session 24h, vérification 5 min) et les timeouts réseau
- Sélectionne la stratégie d'authentification admin et le backend de stockage
- Fournit les URLs de redirection des états terminaux (succès checkout, login admin)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default

# API backend (JSON over HTTP)
# - en local l'API tourne sur le port 3001, en prod derrière /api
API_BASE_URL = _clean_env(os.getenv("API_BASE_URL") or "http://localhost:3001/api").rstrip("/")

# Source de secours: snapshots statiques (packs.json, products.json)
FALLBACK_DATA_DIR = Path(_clean_env(os.getenv("FALLBACK_DATA_DIR") or "") or (BASE_DIR / "data"))
FALLBACK_BASE_URL = _clean_env(os.getenv("FALLBACK_BASE_URL") or "").rstrip("/")

# Cache mémoire des lectures API réussies
CACHE_TTL_SECONDS = _int_env("CACHE_TTL_SECONDS", 5 * 60)
DEFAULT_PAGE_LIMIT = _int_env("DEFAULT_PAGE_LIMIT", 100)

# Timeouts réseau et politique de retry (uniquement avant débit)
HTTP_TIMEOUT_SECONDS = _int_env("HTTP_TIMEOUT_SECONDS", 10)
PAYMENT_CONFIRM_TIMEOUT_SECONDS = _int_env("PAYMENT_CONFIRM_TIMEOUT_SECONDS", 60)
PAYMENT_CREATE_RETRIES = _int_env("PAYMENT_CREATE_RETRIES", 2)

# Session admin: expiration absolue fixée à l'émission
SESSION_TTL_HOURS = _int_env("SESSION_TTL_HOURS", 24)
SESSION_CHECK_INTERVAL_SECONDS = _int_env("SESSION_CHECK_INTERVAL_SECONDS", 5 * 60)

# Stratégie d'authentification admin: "backend" (POST /admin/login) ou "demo" (identifiants locaux)
AUTH_STRATEGY = (_clean_env(os.getenv("AUTH_STRATEGY") or "backend")).lower()
ADMIN_DEMO_EMAIL = _clean_env(os.getenv("ADMIN_DEMO_EMAIL") or "")
# Hash bcrypt du mot de passe démo (éviter stockage en clair)
ADMIN_DEMO_PASSWORD_HASH = _clean_env(os.getenv("ADMIN_DEMO_PASSWORD_HASH") or "")
DEMO_TOKEN_SECRET = _clean_env(os.getenv("DEMO_TOKEN_SECRET") or "replace_me_with_a_long_random_secret")

# Stockage clé-valeur persistant: memory | file | redis
STORAGE_BACKEND = (_clean_env(os.getenv("STORAGE_BACKEND") or "file")).lower()
STORAGE_PATH = Path(_clean_env(os.getenv("STORAGE_PATH") or "") or (BASE_DIR / ".storefront" / "storage.json"))
STORAGE_REDIS_URL = _clean_env(os.getenv("STORAGE_REDIS_URL") or "redis://127.0.0.1:6379/0")
STORAGE_REDIS_PREFIX = _clean_env(os.getenv("STORAGE_REDIS_PREFIX") or "storefront:")

# Stripe: clé publique de secours si /payments/config est injoignable
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")

# Redirections des états terminaux
CART_SUCCESS_PATH = os.getenv("CART_SUCCESS_PATH", "/cart-checkout-success/")
PACK_SUCCESS_PATH = os.getenv("PACK_SUCCESS_PATH", "/payment-success.html")
ADMIN_LOGIN_PATH = os.getenv("ADMIN_LOGIN_PATH", "/admin/")

# CORS (surface HTTP locale)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = (_clean_env(os.getenv("LOG_LEVEL") or "INFO")).upper()
