"""
Constantes produit: designs disponibles, seuil de livraison gratuite et tarifs (cents).
"""
from typing import Any, Dict, List

FREE_SHIPPING_THRESHOLD = 3500
STANDARD_SHIPPING = 495
EXPRESS_SHIPPING = 995
CURRENCY = "usd"
ALLOWED_SHIPPING_COUNTRIES = ["US", "CA", "GB", "AU"]

DESIGNS: List[Dict[str, str]] = [
    {"id": f"design-{n}", "name": name, "image": f"/images/design-{n}.svg"}
    for n, name in enumerate(
        ["Eternal Love", "Forever Yours", "My Heart", "True Love", "Soulmate"], start=1
    )
]

PRODUCT: Dict[str, Any] = {
    "id": "eternal-love-card",
    "name": "I Choose You - The Ultimate Valentine's Gift",
    "slug": "i-choose-you-the-ultimate-valentines-gift",
    "designs": DESIGNS,
    "freeShippingThreshold": FREE_SHIPPING_THRESHOLD,
    "shipping": {"standard": STANDARD_SHIPPING, "express": EXPRESS_SHIPPING},
}

def get_design(design_id: str):
    return next((d for d in DESIGNS if d["id"] == design_id), None)
