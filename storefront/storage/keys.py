# Clés persistées: formes et noms stables entre déploiements (compat ascendante/descendante)
CART_KEY = "kv-garage-cart"
LAST_CART_ORDER_KEY = "kv-garage-last-order"
LAST_PACK_ORDER_KEY = "lastOrder"
ADMIN_TOKEN_KEY = "admin_token"
ADMIN_USER_KEY = "admin_user"
ADMIN_TOKEN_EXPIRY_KEY = "admin_token_expiry"
DEMO_SESSION_KEY = "kv_garage_admin_session"
PERFORMANCE_METRICS_KEY = "performance_metrics"

SESSION_KEYS = (ADMIN_TOKEN_KEY, ADMIN_USER_KEY, ADMIN_TOKEN_EXPIRY_KEY)
