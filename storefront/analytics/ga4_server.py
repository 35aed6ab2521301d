"""
Google Analytics 4 côté serveur (Measurement Protocol).
- Purchase envoyé depuis le webhook Stripe, en plus de l'événement Facebook CAPI.
- Enhanced conversions: email, téléphone (E.164), prénom, nom et rue hachés en SHA-256;
  ville, région, code postal et pays en clair.
- Sans GA_MEASUREMENT_ID / GA_API_SECRET: aucun appel, {"success": False, "error": "Not configured"}.
"""
import hashlib
import logging
import re
import time
from typing import Any, Dict, List, Optional

import httpx

from storefront import config

logger = logging.getLogger(__name__)

MP_COLLECT_URL = "https://www.google-analytics.com/mp/collect"

def sha256(value: str) -> str:
    return hashlib.sha256(value.strip().lower().encode("utf-8")).hexdigest()

def normalize_phone(phone: str) -> str:
    digits = re.sub(r"\D", "", phone)
    # numéro US sans indicatif
    if len(digits) == 10 and not digits.startswith("1"):
        return "+1" + digits
    return "+" + digits

def is_configured() -> bool:
    return bool(config.GA_MEASUREMENT_ID and config.GA_API_SECRET)

def fallback_client_id() -> str:
    return f"server.{int(time.time() * 1000)}"

def build_user_data(
    email: Optional[str] = None,
    phone: Optional[str] = None,
    name: Optional[str] = None,
    address: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    user_data: Dict[str, Any] = {}
    if email:
        user_data["sha256_email_address"] = sha256(email)
    if phone and re.sub(r"\D", "", phone):
        user_data["sha256_phone_number"] = sha256(normalize_phone(phone))
    parts = (name or "").split()
    if parts:
        user_data["address.sha256_first_name"] = sha256(parts[0])
    if len(parts) > 1:
        user_data["address.sha256_last_name"] = sha256(" ".join(parts[1:]))
    address = address or {}
    if address.get("line1"):
        user_data["address.sha256_street"] = sha256(address["line1"])
    for key, ga_key in (
        ("city", "address.city"),
        ("state", "address.region"),
        ("postal_code", "address.postal_code"),
        ("country", "address.country"),
    ):
        if address.get(key):
            user_data[ga_key] = address[key]
    return user_data

def send_measurement_event(payload: Dict[str, Any]) -> Dict[str, Any]:
    if not is_configured():
        logger.warning("GA4 Measurement Protocol not configured - missing GA_MEASUREMENT_ID or GA_API_SECRET")
        return {"success": False, "error": "Not configured"}
    try:
        resp = httpx.post(
            MP_COLLECT_URL,
            params={"measurement_id": config.GA_MEASUREMENT_ID, "api_secret": config.GA_API_SECRET},
            json=payload,
            timeout=10,
        )
    except httpx.HTTPError as e:
        logger.error("GA4 Measurement Protocol request failed: %s", e)
        return {"success": False, "error": str(e) or "Request failed"}

    # 204 No Content en cas de succès
    if resp.status_code >= 400:
        logger.error("GA4 Measurement Protocol error status=%s body=%s", resp.status_code, resp.text)
        return {"success": False, "error": f"HTTP {resp.status_code}: {resp.text}"}
    return {"success": True}

def purchase(
    *,
    client_id: str,
    transaction_id: str,
    value_cents: int,
    items: List[Dict[str, Any]],
    email: Optional[str] = None,
    phone: Optional[str] = None,
    name: Optional[str] = None,
    address: Optional[Dict[str, Any]] = None,
    currency: str = "USD",
) -> Dict[str, Any]:
    """Événement purchase (item_id = design-bundle, montants en dollars)."""
    payload: Dict[str, Any] = {
        "client_id": client_id,
        "timestamp_micros": str(int(time.time() * 1_000_000)),
        "events": [{
            "name": "purchase",
            "params": {
                "transaction_id": transaction_id,
                "currency": currency,
                "value": value_cents / 100,
                "items": [
                    {
                        "item_id": f"{i.get('design_id')}-{i.get('bundle_id')}",
                        "item_name": i.get("bundle_name") or "Product",
                        "price": int(i.get("price") or 0) / 100,
                        "quantity": int(i.get("quantity") or 1),
                    }
                    for i in items
                ],
            },
        }],
    }
    user_data = build_user_data(email, phone, name, address)
    if user_data:
        payload["user_data"] = user_data

    result = send_measurement_event(payload)
    if result.get("success"):
        logger.info("GA4 Measurement Protocol: purchase event sent for transaction %s", transaction_id)
    return result
