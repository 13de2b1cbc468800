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
- Normalise et expose les secrets/URLs (Supabase, Mercado Pago), sécurité cookies, CORS/hosts
- Fournit les chemins de retour du checkout (galerie) et du webhook
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

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Mercado Pago: jeton d'accès, API et devise fixe des préférences
MERCADO_PAGO_ACCESS_TOKEN = _clean_env(os.getenv("MERCADO_PAGO_ACCESS_TOKEN") or "")
MERCADO_PAGO_API_URL = _clean_env(os.getenv("MERCADO_PAGO_API_URL") or "https://api.mercadopago.com").rstrip("/")
MERCADO_PAGO_TIMEOUT = _int_env("MERCADO_PAGO_TIMEOUT", 10)
PAYMENT_CURRENCY = _clean_env(os.getenv("PAYMENT_CURRENCY") or "BRL")

# URLs publiques: base de repli si la requête n'a pas d'en-tête Origin
PUBLIC_BASE_URL = _clean_env(os.getenv("PUBLIC_BASE_URL") or "http://localhost:8000").rstrip("/")
GALLERY_PATH = os.getenv("GALLERY_PATH", "/gallery")
WEBHOOK_PATH = os.getenv("WEBHOOK_PATH", "/api/v1/payments/webhook")

# Paiements 'pending' sans préférence plus vieux que ce délai: purgeables
PENDING_PAYMENT_TTL_MINUTES = _int_env("PENDING_PAYMENT_TTL_MINUTES", 60)

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY", "replace_me_with_a_long_random_secret")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Secret de signature des webhooks Mercado Pago (x-signature); vide = vérification désactivée (dev)
MERCADO_PAGO_WEBHOOK_SECRET = _clean_env(os.getenv("MERCADO_PAGO_WEBHOOK_SECRET") or "")

# Limitation de débit (fastapi-limiter): Redis partagé entre workers
RATE_LIMIT_REDIS_URL = _clean_env(os.getenv("RATE_LIMIT_REDIS_URL") or "redis://127.0.0.1:6379/0")
