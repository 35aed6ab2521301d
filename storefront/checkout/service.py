"""
Orchestration du checkout: valider -> calculer -> construire -> soumettre.
"""
import json
import logging
from typing import Any, Dict

from storefront import config
from storefront.catalog.bundles import BundleCatalog
from storefront.checkout import stripe_client
from storefront.checkout.errors import ConfigurationError
from storefront.checkout.pricing import allowed_shipping_amounts, calculate_pricing
from storefront.checkout.session_builder import STORE_SOURCE, build_checkout_session
from storefront.checkout.validator import CartValidator, PaymentIntentInput, validate_payment_intent_body
from storefront.catalog.product import CURRENCY

logger = logging.getLogger(__name__)

def require_site_url() -> str:
    if not config.SITE_URL:
        raise ConfigurationError("SITE_URL not configured")
    return config.SITE_URL

# module storefront.checkout.service
def create_checkout_session(body: Any, validator: CartValidator) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout hébergée.
    - Étapes:
      1) Valider le panier (CartValidator) -> lignes + attribution
      2) Calculer subtotal/livraison/total (calculate_pricing)
      3) Construire les paramètres Stripe (build_checkout_session)
      4) Soumettre (stripe_client.create_session)
    - Retour: {"id", "url", "fbEventId"}
    - Erreurs: CheckoutValidationError avant tout appel Stripe,
      ConfigurationError / PaymentProviderError ensuite
    """
    lines, attribution = validator.validate_body(body)
    site_url = require_site_url()
    pricing = calculate_pricing(lines)
    params = build_checkout_session(lines, pricing, site_url, attribution)
    session = stripe_client.create_session(**params)
    logger.info(
        "checkout.session created id=%s lines=%s subtotal=%s shipping=%s",
        session.get("id"), len(lines), pricing.subtotal, pricing.shipping_cost,
    )
    return {"id": session.get("id"), "url": session.get("url"), "fbEventId": attribution.event_id}

def _intent_metadata(data: PaymentIntentInput, checkout_type: str) -> Dict[str, str]:
    items = [{
        "bundle_id": data.bundle_id,
        "bundle_name": data.bundle_name,
        "design_id": data.design_id,
        "design_name": data.design_name,
        "quantity": 1,
        "price": data.amount,
    }]
    metadata = {
        "source": STORE_SOURCE,
        "checkout_type": checkout_type,
        "items": json.dumps(items, separators=(",", ":")),
        "subtotal": str(data.amount),
        "shipping": str(data.shipping),
        "sku": data.bundle_sku,
    }
    if data.ga_client_id:
        metadata["ga_client_id"] = data.ga_client_id
    return metadata

def create_payment_intent(body: Any, catalog: BundleCatalog) -> Dict[str, Any]:
    """
    Payment intent pour le checkout personnalisé (un bundle).
    - shipping doit être l'un des tarifs proposés pour ce montant
    - montant débité = amount + shipping
    """
    amount = body.get("amount") if isinstance(body, dict) else None
    allowed = allowed_shipping_amounts(amount) if isinstance(amount, int) else []
    data = validate_payment_intent_body(body, catalog, allowed_shipping=allowed)
    total = data.amount + data.shipping
    intent = stripe_client.create_payment_intent(
        amount=total,
        currency=CURRENCY,
        automatic_payment_methods={"enabled": True},
        metadata=_intent_metadata(data, "custom"),
    )
    return {
        "clientSecret": intent.get("client_secret"),
        "paymentIntentId": intent.get("id"),
        "totalAmount": total,
    }

def create_express_payment_intent(body: Any, catalog: BundleCatalog) -> Dict[str, Any]:
    """Express checkout (Apple Pay / Google Pay): livraison offerte."""
    data = validate_payment_intent_body(body, catalog)
    intent = stripe_client.create_payment_intent(
        amount=data.amount,
        currency=CURRENCY,
        automatic_payment_methods={"enabled": True},
        metadata=_intent_metadata(data, "express"),
    )
    return {"clientSecret": intent.get("client_secret"), "paymentIntentId": intent.get("id")}
