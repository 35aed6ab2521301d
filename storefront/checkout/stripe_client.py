"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
- Pas de retry réseau ni de clé d'idempotence: un échec remonte tel quel.
- Les erreurs SDK sont converties en PaymentProviderError.
"""
import stripe
from typing import Any, Dict

from storefront import config
from storefront.checkout.errors import ConfigurationError, PaymentProviderError

# module storefront.checkout.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - Clé absente ou de type placeholder: ConfigurationError (aucun appel réseau).
    """
    key = config.STRIPE_SECRET_KEY
    if not key or key.startswith("sk_test_placeholder"):
        raise ConfigurationError("Stripe secret key not configured")
    stripe.api_key = key
    stripe.max_network_retries = 0
    return stripe

def _provider_error(e: Exception) -> PaymentProviderError:
    message = getattr(e, "user_message", None) or str(e) or "Stripe request failed"
    return PaymentProviderError(message, code=getattr(e, "code", None))

def create_session(**params: Any) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout à partir des paramètres construits par
    session_builder.build_checkout_session.
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        raise _provider_error(e) from e
    return session.to_dict()

def create_payment_intent(**params: Any) -> Dict[str, Any]:
    require_stripe()
    try:
        intent = stripe.PaymentIntent.create(**params)
    except stripe.StripeError as e:
        raise _provider_error(e) from e
    return intent.to_dict()

def retrieve_charge(charge_id: str) -> Dict[str, Any]:
    require_stripe()
    try:
        charge = stripe.Charge.retrieve(charge_id)
    except stripe.StripeError as e:
        raise _provider_error(e) from e
    return charge.to_dict()

def construct_event(payload: bytes, signature: str):
    """
    Valide un événement Stripe signé (webhook).
    - Lève ConfigurationError si STRIPE_WEBHOOK_SECRET est absent
    - Lève ValueError / stripe.SignatureVerificationError si payload ou signature invalide
    - Retour: événement sous forme de dict (objets imbriqués inclus)
    """
    secret = config.STRIPE_WEBHOOK_SECRET
    if not secret or secret.startswith("whsec_placeholder"):
        raise ConfigurationError("Stripe webhook secret not configured")
    return stripe.Webhook.construct_event(payload, signature, secret).to_dict()
