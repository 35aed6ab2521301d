"""
Exceptions du flux de checkout.
- CheckoutValidationError: entrée client rejetée (400), message préfixé par "Invalid"
- ConfigurationError: secret/URL manquant côté serveur (500)
- PaymentProviderError: erreur renvoyée par Stripe (500, message fournisseur en details)
"""
from typing import Optional


class CheckoutError(Exception):
    """Base des erreurs du checkout."""


class CheckoutValidationError(CheckoutError):
    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.index = index


class ConfigurationError(CheckoutError):
    pass


class PaymentProviderError(CheckoutError):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
