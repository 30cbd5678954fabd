"""Application-wide constants.

Storage keys are shared with already-installed clients, so they must not
change between releases.
"""

# ============== STORAGE KEYS ==============
STORAGE_PREFIX = "@amazon_group"
USER_KEY = f"{STORAGE_PREFIX}:user"
TOKEN_KEY = f"{STORAGE_PREFIX}:token"
FAVORITES_KEY = f"{STORAGE_PREFIX}:favorites"
GUEST_SCOPE = "guest"

ORDERS_STORAGE_KEY = "orders-storage"
ORDERS_STORAGE_VERSION = 1

# ============== API ==============
DEFAULT_API_URL = "https://amazon-group-app.onrender.com/api"
API_TIMEOUT_SECONDS = 30

# ============== ORDERS ==============
DEFAULT_CURRENCY = "USD"
CHECKOUT_CURRENCY = "PEN"
RECENT_ORDERS_LIMIT = 5
FALLBACK_SERVICE_TITLE = "Servicio"
FALLBACK_PROVIDER_NAME = "Proveedor"

# ============== NOTIFICATIONS ==============
MAX_NOTICES = 20
