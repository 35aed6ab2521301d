"""
Construction des paramètres de stripe.checkout.Session.create.

- success_url / cancel_url sont dérivées de SITE_URL, jamais de l'entrée client
- metadata.items: résumé JSON des lignes; découpé en items_0..items_n si la
  valeur dépasse la limite Stripe (500 caractères par valeur)
"""
import json
from typing import Any, Dict, Iterable, List, Optional

from storefront.catalog.product import ALLOWED_SHIPPING_COUNTRIES, CURRENCY
from storefront.checkout.pricing import PricingResult, shipping_options_for
from storefront.checkout.validator import Attribution, ValidatedCartLine

STORE_SOURCE = "pokemyheart-store"
METADATA_VALUE_LIMIT = 500

# module storefront.checkout.session_builder
def items_summary(lines: Iterable[ValidatedCartLine]) -> List[Dict[str, Any]]:
    return [
        {
            "bundle_id": line.bundle_id,
            "bundle_name": line.bundle_name,
            "design_id": line.design_id,
            "design_name": line.design_name,
            "quantity": line.quantity,
            "price": line.price,
        }
        for line in lines
    ]


def split_items_metadata(items: List[Dict[str, Any]], limit: int = METADATA_VALUE_LIMIT) -> Dict[str, str]:
    payload = json.dumps(items, separators=(",", ":"))
    if len(payload) <= limit:
        return {"items": payload}
    chunks = [payload[i:i + limit] for i in range(0, len(payload), limit)]
    out = {f"items_{n}": chunk for n, chunk in enumerate(chunks)}
    out["items_chunks"] = str(len(chunks))
    return out


def join_items_metadata(metadata: Optional[Dict[str, Any]]) -> str:
    """Inverse de split_items_metadata: retourne le JSON brut ("" si absent)."""
    meta = metadata or {}
    if meta.get("items"):
        return meta["items"]
    try:
        count = int(meta.get("items_chunks") or 0)
    except (TypeError, ValueError):
        count = 0
    return "".join(meta.get(f"items_{n}") or "" for n in range(count))


def shipping_rate_data(amount: int, display_name: str) -> Dict[str, Any]:
    return {
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": amount, "currency": CURRENCY},
            "display_name": display_name,
        }
    }


def to_line_items(lines: Iterable[ValidatedCartLine]) -> List[Dict[str, Any]]:
    line_items = []
    for line in lines:
        product_data: Dict[str, Any] = {
            "name": line.name,
            "description": line.description,
            "metadata": {
                "design_id": line.design_id,
                "design_name": line.design_name,
                "bundle_id": line.bundle_id,
                "bundle_name": line.bundle_name,
                "bundle_sku": line.bundle_sku,
            },
        }
        if line.image:
            product_data["images"] = [line.image]
        line_items.append({
            "price_data": {
                "currency": CURRENCY,
                "unit_amount": line.price,
                "product_data": product_data,
            },
            "quantity": line.quantity,
        })
    return line_items


def attribution_metadata(attribution: Optional[Attribution]) -> Dict[str, str]:
    if attribution is None:
        return {}
    meta = {}
    if attribution.fbc:
        meta["fb_fbc"] = attribution.fbc
    if attribution.fbp:
        meta["fb_fbp"] = attribution.fbp
    if attribution.event_id:
        meta["fb_event_id"] = attribution.event_id
    if attribution.ga_client_id:
        meta["ga_client_id"] = attribution.ga_client_id
    return meta


def build_checkout_session(
    lines: List[ValidatedCartLine],
    pricing: PricingResult,
    site_url: str,
    attribution: Optional[Attribution] = None,
) -> Dict[str, Any]:
    site = site_url.rstrip("/")
    metadata: Dict[str, str] = {
        "source": STORE_SOURCE,
        "checkout_type": "hosted",
        "subtotal": str(pricing.subtotal),
        "shipping": str(pricing.shipping_cost),
    }
    metadata.update(split_items_metadata(items_summary(lines)))
    metadata.update(attribution_metadata(attribution))

    return {
        "mode": "payment",
        "line_items": to_line_items(lines),
        "shipping_address_collection": {"allowed_countries": list(ALLOWED_SHIPPING_COUNTRIES)},
        "shipping_options": [
            shipping_rate_data(opt["amount"], opt["display_name"])
            for opt in shipping_options_for(pricing.subtotal)
        ],
        "success_url": f"{site}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{site}/",
        "metadata": metadata,
    }
