"""
Calcul du sous-total, de la livraison et du total (cents) à partir des lignes validées.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List

from storefront.catalog.product import EXPRESS_SHIPPING, FREE_SHIPPING_THRESHOLD, STANDARD_SHIPPING

FREE_STANDARD_LABEL = "FREE Standard Shipping (5-7 days)"
STANDARD_LABEL = "Standard Shipping (5-7 days)"
EXPRESS_LABEL = "Express Shipping (1-3 days)"


@dataclass(frozen=True)
class PricingResult:
    subtotal: int
    shipping_cost: int
    total: int
    qualifies_for_free_shipping: bool


def calculate_pricing(
    lines: Iterable,
    threshold: int = FREE_SHIPPING_THRESHOLD,
    standard_shipping: int = STANDARD_SHIPPING,
) -> PricingResult:
    """
    - subtotal = somme(price * quantity)
    - livraison standard offerte si subtotal >= threshold (borne incluse)
    - total = subtotal + shipping_cost
    """
    subtotal = sum(line.price * line.quantity for line in lines)
    qualifies = subtotal >= threshold
    shipping_cost = 0 if qualifies else standard_shipping
    return PricingResult(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        total=subtotal + shipping_cost,
        qualifies_for_free_shipping=qualifies,
    )


def shipping_options_for(subtotal: int, threshold: int = FREE_SHIPPING_THRESHOLD) -> List[Dict]:
    """
    Options proposées au client: standard puis express.
    Au-delà du seuil, la standard est offerte et l'express passe au tarif standard.
    """
    if subtotal >= threshold:
        return [
            {"amount": 0, "display_name": FREE_STANDARD_LABEL},
            {"amount": STANDARD_SHIPPING, "display_name": EXPRESS_LABEL},
        ]
    return [
        {"amount": STANDARD_SHIPPING, "display_name": STANDARD_LABEL},
        {"amount": EXPRESS_SHIPPING, "display_name": EXPRESS_LABEL},
    ]


def allowed_shipping_amounts(subtotal: int) -> List[int]:
    return [opt["amount"] for opt in shipping_options_for(subtotal)]
