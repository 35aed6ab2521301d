from urllib.parse import urlparse
import socket
from storefront import config
from storefront.infra.supabase_client import get_service_supabase

HEALTH_TABLES = ("orders", "inventory", "customers")

def _check_table(client, name: str):
    try:
        res = client.table(name).select("*").limit(1).execute()
        cnt = len(res.data or [])
        return {"ok": True, "rows": cnt}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info():
    effective_url = config.SUPABASE_URL
    parsed = urlparse(effective_url) if effective_url else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info = {
        "supabase_url": effective_url,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {}
    }
    try:
        client = get_service_supabase()
        for t in HEALTH_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info

def health_config_info():
    """Présence (booléens uniquement) des réglages nécessaires au checkout."""
    return {
        "site_url": bool(config.SITE_URL),
        "stripe_secret_key": bool(config.STRIPE_SECRET_KEY),
        "stripe_webhook_secret": bool(config.STRIPE_WEBHOOK_SECRET),
        "facebook_capi": bool(config.FB_PIXEL_ID and config.FB_CONVERSIONS_API_TOKEN),
    }
