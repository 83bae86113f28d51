# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du backend boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Pagar.me, Melhor Envio, Resend)
- Expose les constantes métier du checkout (frete grátis, desconto PIX, limites, expiration)
- Paramètres du polling de confirmation et de la fenêtre de réservation
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

# Supabase: URL et clés (anon / service role)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Backend d'inventaire: "supabase" (RPC Postgres) ou "memory" (dev/tests)
INVENTORY_BACKEND = _clean_env(os.getenv("INVENTORY_BACKEND") or "supabase").lower()

# Pagar.me (API v5): la clé secrète n'est lue qu'ici, jamais côté client
PAGARME_API_BASE = _clean_env(os.getenv("PAGARME_API_BASE") or "https://api.pagar.me/core/v5").rstrip("/")
PAGARME_TIMEOUT_SECONDS = _float_env("PAGARME_TIMEOUT_SECONDS", 20.0)
PAGARME_STATEMENT_DESCRIPTOR = os.getenv("PAGARME_STATEMENT_DESCRIPTOR", "VIOS LABS")

def pagarme_secret_key() -> str:
    """Lue à chaque appel pour permettre la rotation/monkeypatch sans redémarrage."""
    return _clean_env(os.getenv("PAGARME_SECRET_KEY") or "")

def is_production() -> bool:
    return (os.getenv("APP_ENV") or os.getenv("ENVIRONMENT") or "").lower() == "production"

# Melhor Envio (cotação de frete)
MELHOR_ENVIO_SANDBOX = (os.getenv("MELHOR_ENVIO_SANDBOX", "false").lower() == "true")
DEFAULT_ORIGIN_CEP = "01310100"

def melhor_envio_token() -> str:
    return _clean_env(os.getenv("MELHOR_ENVIO_TOKEN") or "")

def melhor_envio_origin_cep() -> str:
    raw = _clean_env(os.getenv("MELHOR_ENVIO_ORIGIN_POSTAL_CODE") or "") or DEFAULT_ORIGIN_CEP
    digits = "".join(ch for ch in raw if ch.isdigit())
    return digits if len(digits) == 8 else DEFAULT_ORIGIN_CEP

# Resend (e-mails transactionnels)
RESEND_API_URL = "https://api.resend.com/emails"
EMAIL_FROM = os.getenv("EMAIL_FROM", "VIOS Labs <atendimento@vioslabs.com.br>")

def resend_api_key() -> str:
    return _clean_env(os.getenv("RESEND_API_KEY") or "")

# Bling (ERP): OAuth2, jetons persistés dans bling_tokens (id=1), repli .env
BLING_API_BASE = _clean_env(os.getenv("BLING_API_BASE") or "https://api.bling.com.br/Api/v3").rstrip("/")
BLING_TOKEN_URL = _clean_env(os.getenv("BLING_TOKEN_URL") or "https://www.bling.com.br/Api/v3/oauth/token")
BLING_TOKEN_DEFAULT_TTL_SECONDS = 6 * 3600
BLING_TOKEN_EXPIRY_MARGIN_SECONDS = 5 * 60

def bling_client_id() -> str:
    return _clean_env(os.getenv("BLING_CLIENT_ID") or "")

def bling_client_secret() -> str:
    return _clean_env(os.getenv("BLING_CLIENT_SECRET") or "")

def bling_env_access_token() -> str:
    return _clean_env(os.getenv("BLING_ACCESS_TOKEN") or "")

def bling_env_refresh_token() -> str:
    return _clean_env(os.getenv("BLING_REFRESH_TOKEN") or "")

def bling_oauth_state() -> str:
    """Valeur `state` attendue sur le callback OAuth (vérifiée si définie)."""
    return _clean_env(os.getenv("BLING_OAUTH_STATE") or "")

# Cron: secret partagé (header Authorization: Bearer <CRON_SECRET>)
def cron_secret() -> str:
    return _clean_env(os.getenv("CRON_SECRET") or "")

SITE_URL = _clean_env(os.getenv("SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL") or "https://www.vioslabs.com.br").rstrip("/")

# Cookies / CORS / hosts
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY", "replace_me_with_a_long_random_secret")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
# Proxies dont les en-têtes X-Forwarded-* sont crus (IP client réelle pour le rate limit)
FORWARDED_ALLOW_IPS = [h.strip() for h in os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1").split(",") if h.strip()]

# --- Constantes métier du checkout ---
FREE_SHIPPING_THRESHOLD = 289.9
PIX_DISCOUNT_PERCENT = 0.05
MAX_INSTALLMENTS = 3
COUPON_CODE_TESTE90 = "TESTE90"
COUPON_TESTE90_DISCOUNT_PERCENT = 1.0

MIN_SUBTOTAL = 10.0
MAX_SUBTOTAL = 100000.0
MAX_ITEM_PRICE = 100000.0
MIN_QUANTITY = 1
MAX_QUANTITY_PER_ITEM = 10
MAX_ITEMS_PER_CART = 20
MAX_TOTAL_QUANTITY = 50

# PIX: validité du QR Code (1 heure), fuso para exibição
PIX_EXPIRATION_SECONDS = 3600
PIX_TIMEZONE = "America/Sao_Paulo"

# Réservation de stock: fenêtre d'une heure (alignée sur le PIX)
RESERVATION_TTL_SECONDS = _int_env("RESERVATION_TTL_SECONDS", 3600)

# Polling de confirmation (webhook asynchrone)
ORDER_POLL_INTERVAL_SECONDS = _float_env("ORDER_POLL_INTERVAL_SECONDS", 2.0)
ORDER_POLL_MAX_ATTEMPTS = _int_env("ORDER_POLL_MAX_ATTEMPTS", 15)
