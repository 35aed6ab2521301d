"""
Commandes: création depuis les événements Stripe et règles de back-office.

- Idempotence: une commande existante pour la session / le payment intent court-circuite la création
- Numérotation: PMH-001, PMH-002, ... à partir de la dernière commande
- Conflit d'unicité (23505): revérifie le doublon puis réessaie (3 tentatives max)
- Statistiques client via la RPC upsert_customer_stats, repli manuel sur la table customers
"""
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from postgrest.exceptions import APIError

from storefront import config
from storefront.analytics import facebook_capi, ga4_server
from storefront.checkout import stripe_client
from storefront.checkout.errors import CheckoutError
from storefront.checkout.session_builder import STORE_SOURCE, join_items_metadata
from storefront.orders import repository

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("unfulfilled", "processing", "fulfilled", "shipped", "cancelled")
FULFILLED_STATUSES = ("fulfilled", "shipped")
MAX_CREATE_ATTEMPTS = 3
UNIQUE_VIOLATION = "23505"


class OrderCreationError(Exception):
    pass


# module storefront.orders.service
def next_order_number(last_order_number: Optional[str], prefix: Optional[str] = None) -> str:
    prefix = prefix or config.ORDER_NUMBER_PREFIX
    next_number = 1
    if last_order_number:
        match = re.search(rf"{re.escape(prefix)}-(\d+)", last_order_number)
        if match:
            next_number = int(match.group(1)) + 1
    return f"{prefix}-{next_number:03d}"

def parse_order_items(raw: Optional[str], context: str = "") -> List[Dict[str, Any]]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.error("Failed to parse items metadata (%s)", context)
        return []
    return parsed if isinstance(parsed, list) else []

def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0

def _site_host() -> str:
    return urlparse(config.SITE_URL).hostname or "localhost"

def placeholder_email(object_id: str) -> str:
    return f"missing+{object_id}@{_site_host()}"

def shipping_address_from(details: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Normalise {name, address{...}} Stripe en adresse de livraison à plat."""
    address = (details or {}).get("address")
    if not address:
        return None
    return {
        "name": details.get("name") or "",
        "line1": address.get("line1") or "",
        "line2": address.get("line2") or None,
        "city": address.get("city") or "",
        "state": address.get("state") or "",
        "postal_code": address.get("postal_code") or "",
        "country": address.get("country") or "",
    }

def create_order_with_retry(payload: Dict[str, Any], max_attempts: int = MAX_CREATE_ATTEMPTS) -> Tuple[str, bool]:
    """
    Insère la commande avec le prochain numéro disponible.
    Retour: (order_number, was_duplicate)
    """
    for attempt in range(max_attempts):
        order_number = next_order_number(repository.get_last_order_number())
        try:
            row = repository.insert_order({"order_number": order_number, **payload})
            return row.get("order_number") or order_number, False
        except APIError as e:
            if getattr(e, "code", None) != UNIQUE_VIOLATION:
                raise
            logger.warning("orders.create unique violation attempt=%s number=%s", attempt + 1, order_number)
            existing = repository.find_existing_order(
                payload.get("stripe_session_id"), payload.get("stripe_payment_intent")
            )
            if existing and existing.get("order_number"):
                return existing["order_number"], True
    raise OrderCreationError("Failed to create order after retries")

def upsert_customer_stats(email: str, name: Optional[str], total_spent: int, accepts_marketing: bool = False) -> None:
    if not email:
        return
    try:
        repository.call_upsert_customer_stats(email, name, total_spent, accepts_marketing)
        return
    except APIError as e:
        logger.error("Customer stats RPC failed, falling back to manual update: %s", e)

    existing = repository.get_customer(email)
    if existing:
        repository.update_customer(email, {
            "name": name or existing.get("name"),
            "orders_count": _to_int(existing.get("orders_count")) + 1,
            "total_spent": _to_int(existing.get("total_spent")) + total_spent,
        })
    else:
        repository.insert_customer({
            "email": email,
            "name": name,
            "orders_count": 1,
            "total_spent": total_spent,
            "accepts_marketing": accepts_marketing,
        })

def _send_purchase_event(
    *,
    order_number: str,
    order_url: str,
    metadata: Dict[str, Any],
    email: str,
    name: Optional[str],
    phone: Optional[str],
    address: Optional[Dict[str, Any]],
    total: int,
    items: List[Dict[str, Any]],
) -> None:
    try:
        result = facebook_capi.purchase(
            event_id=metadata.get("fb_event_id") or facebook_capi.generate_event_id("purchase"),
            order_url=order_url,
            email=email,
            value_cents=total,
            order_id=order_number,
            items=items,
            name=name,
            phone=phone,
            address=address,
            fbc=metadata.get("fb_fbc") or None,
            fbp=metadata.get("fb_fbp") or None,
        )
        logger.info("Facebook CAPI Purchase order=%s success=%s", order_number, result.get("success"))
    except Exception:
        logger.exception("Facebook CAPI Purchase event failed for order %s", order_number)

    try:
        result = ga4_server.purchase(
            client_id=metadata.get("ga_client_id") or ga4_server.fallback_client_id(),
            transaction_id=order_number,
            value_cents=total,
            items=items,
            email=email,
            phone=phone,
            name=name,
            address=address,
        )
        logger.info("GA4 Purchase order=%s success=%s", order_number, result.get("success"))
    except Exception:
        logger.exception("GA4 Measurement Protocol Purchase event failed for order %s", order_number)

def handle_checkout_completed(session: Dict[str, Any]) -> Optional[str]:
    """
    checkout.session.completed -> commande 'unfulfilled'.
    Retour: numéro de commande créé, ou None si elle existait déjà.
    """
    metadata = session.get("metadata")
    if not metadata:
        raise OrderCreationError("Missing metadata in checkout session")

    session_id = session.get("id")
    details = session.get("customer_details") or {}
    items = parse_order_items(join_items_metadata(metadata), "checkout.session.completed")
    raw_email = details.get("email") or metadata.get("customer_email") or ""
    email = raw_email.strip() or placeholder_email(session_id)
    name = details.get("name") or None
    payment_intent = session.get("payment_intent") if isinstance(session.get("payment_intent"), str) else None

    existing = repository.find_existing_order(session_id, payment_intent)
    if existing and existing.get("order_number"):
        logger.info("Order already exists for session %s: %s", session_id, existing["order_number"])
        return None

    collected = (session.get("collected_information") or {}).get("shipping_details")
    address = shipping_address_from(collected or session.get("shipping_details"))
    total = _to_int(session.get("amount_total"))

    order_number, was_duplicate = create_order_with_retry({
        "customer_email": email,
        "customer_name": name,
        "items": items,
        "subtotal": _to_int(metadata.get("subtotal")),
        "shipping": _to_int(metadata.get("shipping")),
        "total": total,
        "status": "unfulfilled",
        "shipping_address": address,
        "stripe_session_id": session_id,
        "stripe_payment_intent": payment_intent,
    })
    if was_duplicate:
        logger.info("Duplicate order skipped for session %s: %s", session_id, order_number)
        return None

    upsert_customer_stats(email, name, total, metadata.get("acceptsMarketing") == "true")
    logger.info("Order %s created from checkout session %s", order_number, session_id)

    _send_purchase_event(
        order_number=order_number,
        order_url=f"{config.SITE_URL}/checkout/success?session_id={session_id}",
        metadata=metadata,
        email=email,
        name=name,
        phone=details.get("phone"),
        address=address,
        total=total,
        items=items,
    )
    return order_number

def _intent_email(intent: Dict[str, Any], metadata: Dict[str, Any]) -> str:
    email = metadata.get("customer_email") or intent.get("receipt_email")
    charge_id = intent.get("latest_charge")
    if not email and isinstance(charge_id, str):
        try:
            charge = stripe_client.retrieve_charge(charge_id)
            email = (charge.get("billing_details") or {}).get("email")
        except CheckoutError as e:
            logger.warning("Could not retrieve charge %s for email: %s", charge_id, e)
    return email or placeholder_email(intent.get("id"))

def handle_payment_intent_succeeded(intent: Dict[str, Any]) -> Optional[str]:
    """
    payment_intent.succeeded (checkout personnalisé / express).
    Ignore les intents qui ne viennent pas de cette boutique.
    """
    metadata = intent.get("metadata") or {}
    if metadata.get("source") != STORE_SOURCE:
        return None

    intent_id = intent.get("id")
    items = parse_order_items(join_items_metadata(metadata), "payment_intent.succeeded")
    existing = repository.find_existing_order(None, intent_id)
    if existing and existing.get("order_number"):
        logger.info("Order already exists for PaymentIntent %s: %s", intent_id, existing["order_number"])
        return None

    email = _intent_email(intent, metadata)
    shipping = intent.get("shipping") or {}
    name = metadata.get("customer_name") or shipping.get("name") or None

    address = None
    if metadata.get("shipping_address"):
        try:
            address = json.loads(metadata["shipping_address"])
        except ValueError:
            logger.error("Failed to parse shipping_address metadata for %s", intent_id)
    else:
        address = shipping_address_from(shipping)

    total = _to_int(intent.get("amount"))
    order_number, was_duplicate = create_order_with_retry({
        "customer_email": email,
        "customer_name": name,
        "items": items,
        "subtotal": _to_int(metadata.get("subtotal")),
        "shipping": _to_int(metadata.get("shipping")),
        "total": total,
        "status": "unfulfilled",
        "shipping_address": address,
        "stripe_session_id": None,
        "stripe_payment_intent": intent_id,
    })
    if was_duplicate:
        logger.info("Duplicate order skipped for PaymentIntent %s: %s", intent_id, order_number)
        return None

    upsert_customer_stats(email, name, total)
    logger.info("Order %s created from PaymentIntent %s (%s)", order_number, intent_id, metadata.get("checkout_type"))

    _send_purchase_event(
        order_number=order_number,
        order_url=f"{config.SITE_URL}/checkout/success?payment_intent={intent_id}",
        metadata=metadata,
        email=email,
        name=name,
        phone=shipping.get("phone"),
        address=address if isinstance(address, dict) else None,
        total=total,
        items=items,
    )
    return order_number

def handle_event(event: Dict[str, Any]) -> Optional[str]:
    event_type = (event or {}).get("type")
    obj = ((event or {}).get("data") or {}).get("object") or {}
    if event_type == "checkout.session.completed":
        return handle_checkout_completed(obj)
    if event_type == "payment_intent.succeeded":
        return handle_payment_intent_succeeded(obj)
    return None

# --- Back-office ---

def build_admin_update(
    current: Dict[str, Any],
    status: Optional[str] = None,
    tracking_number: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Calcule les champs à mettre à jour:
    - fulfilled/shipped: pose fulfilled_at une seule fois
    - numéro de suivi sans statut explicite sur une commande 'unfulfilled': passe en 'fulfilled'
    """
    if status is not None and status not in ORDER_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    updates: Dict[str, Any] = {}

    if status:
        updates["status"] = status
        if status in FULFILLED_STATUSES and not current.get("fulfilled_at"):
            updates["fulfilled_at"] = stamp

    if tracking_number is not None:
        updates["tracking_number"] = tracking_number
        if not status and current.get("status") == "unfulfilled":
            updates["status"] = "fulfilled"
            if not current.get("fulfilled_at"):
                updates["fulfilled_at"] = stamp
    return updates

def update_order(order_id: str, status: Optional[str] = None, tracking_number: Optional[str] = None) -> Optional[Dict[str, Any]]:
    current = repository.get_order(order_id)
    if not current:
        return None
    updates = build_admin_update(current, status, tracking_number)
    if not updates:
        return current
    return repository.update_order(order_id, updates)

def compute_order_stats(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    revenue = sum(_to_int(r.get("total")) for r in rows)
    count = len(rows)
    stats: Dict[str, Any] = {
        "revenue": revenue,
        "orderCount": count,
        "averageOrderValue": round(revenue / count) if count else 0,
    }
    for status in ORDER_STATUSES:
        stats[status] = sum(1 for r in rows if r.get("status") == status)
    return stats

def get_order_stats() -> Dict[str, Any]:
    return compute_order_stats(repository.fetch_order_totals())
