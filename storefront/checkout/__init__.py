"""
Module 'checkout' (feature-first): point d'entrée public.
Réunit validation du panier, calcul des prix, construction de session Stripe et client Stripe.
"""

from .errors import CheckoutError, CheckoutValidationError, ConfigurationError, PaymentProviderError
from .validator import CartValidator, ValidatedCartLine, Attribution, validate_payment_intent_body
from .pricing import PricingResult, calculate_pricing, shipping_options_for
from .session_builder import build_checkout_session, join_items_metadata, split_items_metadata
from .stripe_client import require_stripe, create_session, create_payment_intent, construct_event

__all__ = [
    # errors
    "CheckoutError",
    "CheckoutValidationError",
    "ConfigurationError",
    "PaymentProviderError",
    # validator
    "CartValidator",
    "ValidatedCartLine",
    "Attribution",
    "validate_payment_intent_body",
    # pricing
    "PricingResult",
    "calculate_pricing",
    "shipping_options_for",
    # session
    "build_checkout_session",
    "join_items_metadata",
    "split_items_metadata",
    # stripe
    "require_stripe",
    "create_session",
    "create_payment_intent",
    "construct_event",
]
