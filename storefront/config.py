# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, Facebook CAPI, GA4)
- Sécurité: cookies, CORS/hosts, allowlist admin
- SITE_URL n'a pas de valeur par défaut: le checkout échoue (500) tant qu'il n'est pas configuré
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _split_env(name: str, default: str = "") -> list:
    return [x.strip() for x in os.getenv(name, default).split(",") if x.strip()]

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON_KEY = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète et secret webhook (vérifiés au premier usage)
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# URL publique du site: base des redirections Stripe et des images produit
SITE_URL = _clean_env(os.getenv("SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL") or "").rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
ADMIN_EMAIL_ALLOWLIST = [e.lower() for e in _split_env("ADMIN_EMAIL_ALLOWLIST")]

# CORS
CORS_ORIGINS = _split_env("CORS_ORIGINS", "*")
ALLOWED_HOSTS = _split_env("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

# Facebook Conversions API (optionnel: désactivé si absent)
FB_PIXEL_ID = _clean_env(os.getenv("FB_PIXEL_ID") or os.getenv("NEXT_PUBLIC_FB_PIXEL_ID") or "")
FB_CONVERSIONS_API_TOKEN = _clean_env(os.getenv("FB_CONVERSIONS_API_TOKEN") or "")

# Numérotation des commandes (PMH-001, PMH-002, ...)
ORDER_NUMBER_PREFIX = _clean_env(os.getenv("ORDER_NUMBER_PREFIX") or "PMH")

# Google Analytics 4 Measurement Protocol (optionnel: désactivé si absent)
GA_MEASUREMENT_ID = _clean_env(os.getenv("GA_MEASUREMENT_ID") or os.getenv("NEXT_PUBLIC_GA_MEASUREMENT_ID") or "")
GA_API_SECRET = _clean_env(os.getenv("GA_API_SECRET") or "")
