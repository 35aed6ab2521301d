"""
Facebook Conversions API (côté serveur).
- Les données personnelles sont hachées (SHA-256 sur valeur normalisée) avant envoi.
- IP, user agent, fbc et fbp sont transmis tels quels.
- Sans FB_PIXEL_ID / FB_CONVERSIONS_API_TOKEN: aucun appel, {"success": False, "error": "Not configured"}.
"""
import hashlib
import logging
import re
import secrets
import time
from typing import Any, Dict, List, Optional

import httpx

from storefront import config

logger = logging.getLogger(__name__)

FB_API_VERSION = "v19.0"
STANDARD_EVENTS = {
    "PageView",
    "ViewContent",
    "AddToCart",
    "InitiateCheckout",
    "AddPaymentInfo",
    "Purchase",
    "Lead",
    "CompleteRegistration",
}

# (clé entrée, clé Meta) des champs hachés
_HASHED_FIELDS = (
    ("email", "em"),
    ("first_name", "fn"),
    ("last_name", "ln"),
    ("city", "ct"),
    ("state", "st"),
    ("postal_code", "zp"),
    ("country", "country"),
    ("external_id", "external_id"),
)

def sha256(value: str) -> str:
    return hashlib.sha256(value.strip().lower().encode("utf-8")).hexdigest()

def generate_event_id(prefix: str = "evt") -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"

def hash_user_data(user_data: Dict[str, Any]) -> Dict[str, Any]:
    hashed: Dict[str, Any] = {}
    for key, meta_key in _HASHED_FIELDS:
        value = user_data.get(key)
        if value:
            hashed[meta_key] = [sha256(str(value))]
    phone = user_data.get("phone")
    if phone:
        digits = re.sub(r"\D", "", str(phone))
        if digits:
            hashed["ph"] = [sha256(digits)]
    if user_data.get("ip"):
        hashed["client_ip_address"] = user_data["ip"]
    if user_data.get("user_agent"):
        hashed["client_user_agent"] = user_data["user_agent"]
    if user_data.get("fbc"):
        hashed["fbc"] = user_data["fbc"]
    if user_data.get("fbp"):
        hashed["fbp"] = user_data["fbp"]
    return hashed

def is_configured() -> bool:
    return bool(config.FB_PIXEL_ID and config.FB_CONVERSIONS_API_TOKEN)

def send_server_event(
    event_name: str,
    event_id: str,
    event_source_url: str,
    user_data: Dict[str, Any],
    custom_data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Envoie un événement à graph.facebook.com/{version}/{pixel}/events.
    Retour: {"success": True, "eventsReceived": n} ou {"success": False, "error": "..."}
    """
    if not is_configured():
        logger.warning("Facebook CAPI not configured - missing FB_PIXEL_ID or FB_CONVERSIONS_API_TOKEN")
        return {"success": False, "error": "Not configured"}

    event: Dict[str, Any] = {
        "event_name": event_name,
        "event_time": int(time.time()),
        "event_id": event_id,
        "event_source_url": event_source_url,
        "action_source": "website",
        "user_data": hash_user_data(user_data),
    }
    if custom_data:
        event["custom_data"] = custom_data

    url = f"https://graph.facebook.com/{FB_API_VERSION}/{config.FB_PIXEL_ID}/events"
    try:
        resp = httpx.post(
            url,
            params={"access_token": config.FB_CONVERSIONS_API_TOKEN},
            json={"data": [event]},
            timeout=10,
        )
        result = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Facebook CAPI request failed: %s", e)
        return {"success": False, "error": str(e) or "Request failed"}

    if resp.status_code >= 400:
        message = ((result or {}).get("error") or {}).get("message") or "API Error"
        logger.error("Facebook CAPI error status=%s message=%s", resp.status_code, message)
        return {"success": False, "error": message}
    return {"success": True, "eventsReceived": (result or {}).get("events_received")}

def purchase(
    *,
    event_id: str,
    order_url: str,
    email: str,
    value_cents: int,
    order_id: str,
    items: List[Dict[str, Any]],
    name: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[Dict[str, Any]] = None,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    fbc: Optional[str] = None,
    fbp: Optional[str] = None,
) -> Dict[str, Any]:
    """Événement Purchase (contenus = design-bundle, valeurs en dollars)."""
    parts = (name or "").split(" ")
    address = address or {}
    content_ids = [f"{i.get('design_id')}-{i.get('bundle_id')}" for i in items]
    return send_server_event(
        "Purchase",
        event_id,
        order_url,
        {
            "email": email,
            "first_name": parts[0] if parts and parts[0] else None,
            "last_name": " ".join(parts[1:]) or None,
            "phone": phone,
            "city": address.get("city"),
            "state": address.get("state"),
            "postal_code": address.get("postal_code"),
            "country": address.get("country"),
            "external_id": email,
            "ip": ip,
            "user_agent": user_agent,
            "fbc": fbc,
            "fbp": fbp,
        },
        {
            "value": value_cents / 100,
            "currency": "USD",
            "content_ids": content_ids,
            "content_type": "product",
            "num_items": len(items),
            "order_id": order_id,
            "contents": [
                {
                    "id": cid,
                    "quantity": int(i.get("quantity") or 1),
                    "item_price": int(i.get("price") or 0) / 100,
                }
                for cid, i in zip(content_ids, items)
            ],
        },
    )
