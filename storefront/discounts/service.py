"""
Codes de réduction (table statique) et calcul du montant de remise en cents.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storefront.catalog.bundles import format_price

PERCENTAGE = "percentage"
FIXED = "fixed"


@dataclass(frozen=True)
class DiscountCode:
    code: str
    type: str
    value: int
    min_purchase: Optional[int] = None
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class DiscountResult:
    valid: bool
    message: str
    discount_type: Optional[str] = None
    discount_value: Optional[int] = None
    discount_amount: int = 0

    def to_dict(self) -> Dict[str, Any]:
        if not self.valid:
            return {"valid": False, "message": self.message}
        return {
            "valid": True,
            "discountType": self.discount_type,
            "discountValue": self.discount_value,
            "discountAmount": self.discount_amount,
            "message": self.message,
        }


DISCOUNT_CODES: Dict[str, DiscountCode] = {
    "WELCOME10": DiscountCode(code="WELCOME10", type=PERCENTAGE, value=10),
    "LOVE15": DiscountCode(code="LOVE15", type=PERCENTAGE, value=15, min_purchase=3500),
    "SAVE5": DiscountCode(code="SAVE5", type=FIXED, value=500),
}

def discount_amount(discount: DiscountCode, subtotal: int) -> int:
    if discount.type == PERCENTAGE:
        # arrondi au cent le plus proche (demi vers le haut)
        return (subtotal * discount.value + 50) // 100
    return min(discount.value, subtotal)

def validate_discount(
    code: str,
    subtotal: int,
    now: Optional[datetime] = None,
    codes: Optional[Dict[str, DiscountCode]] = None,
) -> DiscountResult:
    """
    Vérifie un code pour un sous-total donné.
    - code normalisé (strip + upper)
    - refus: code inconnu, minimum non atteint, code expiré
    """
    table = DISCOUNT_CODES if codes is None else codes
    discount = table.get((code or "").strip().upper())
    if discount is None:
        return DiscountResult(valid=False, message="Invalid discount code")

    if discount.min_purchase and subtotal < discount.min_purchase:
        return DiscountResult(
            valid=False,
            message=f"Minimum purchase of {format_price(discount.min_purchase)} required",
        )

    if discount.expires_at is not None:
        current = now or datetime.now(timezone.utc)
        if current > discount.expires_at:
            return DiscountResult(valid=False, message="This discount code has expired")

    if discount.type == PERCENTAGE:
        message = f"{discount.value}% discount applied!"
    else:
        message = f"{format_price(discount.value)} discount applied!"

    return DiscountResult(
        valid=True,
        message=message,
        discount_type=discount.type,
        discount_value=discount.value,
        discount_amount=discount_amount(discount, subtotal),
    )
