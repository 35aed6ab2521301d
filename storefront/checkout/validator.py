"""
Validation du panier client (entrée non fiable).

- Chaque ligne est vérifiée dans l'ordre: type, champs texte, prix, quantité,
  bundle connu, prix == prix catalogue (anti-manipulation), puis image.
- La première ligne invalide interrompt la validation (CheckoutValidationError
  avec l'index de la ligne).
- Les champs optionnels invalides (image, fbData, gaData) sont ignorés sans erreur.
- Aucune I/O: le catalogue et l'URL du site sont injectés à la construction.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from storefront.catalog.bundles import BundleCatalog
from storefront.checkout.errors import CheckoutValidationError

MAX_ITEMS = 20
MAX_QUANTITY = 10
MAX_STRING_LENGTH = 500
MAX_PAYMENT_INTENT_STRING_LENGTH = 200

# (clé JSON, attribut ValidatedCartLine)
REQUIRED_STRING_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("name", "name"),
    ("description", "description"),
    ("designId", "design_id"),
    ("designName", "design_name"),
    ("bundleId", "bundle_id"),
    ("bundleName", "bundle_name"),
    ("bundleSku", "bundle_sku"),
)

ATTRIBUTION_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("fbc", "fbc"),
    ("fbp", "fbp"),
    ("eventId", "event_id"),
)


@dataclass(frozen=True)
class ValidatedCartLine:
    name: str
    description: str
    price: int
    quantity: int
    design_id: str
    design_name: str
    bundle_id: str
    bundle_name: str
    bundle_sku: str
    image: Optional[str] = None


@dataclass(frozen=True)
class Attribution:
    fbc: Optional[str] = None
    fbp: Optional[str] = None
    event_id: Optional[str] = None
    ga_client_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentIntentInput:
    amount: int
    shipping: int
    design_id: str
    design_name: str
    bundle_id: str
    bundle_name: str
    bundle_sku: str
    ga_client_id: Optional[str] = None


def is_strict_int(value: Any) -> bool:
    # bool est une sous-classe de int: refusé
    return isinstance(value, int) and not isinstance(value, bool)


def _is_valid_string(value: Any, max_length: int) -> bool:
    return isinstance(value, str) and bool(value.strip()) and len(value) <= max_length


def parse_ga_client_id(ga_data: Any) -> Optional[str]:
    # gaData: {"clientId": "<cookie _ga>"}, ignoré si invalide
    if not isinstance(ga_data, dict):
        return None
    client_id = ga_data.get("clientId")
    return client_id if _is_valid_string(client_id, MAX_PAYMENT_INTENT_STRING_LENGTH) else None


class CartValidator:
    """
    Valide le corps JSON d'une requête de checkout.
    - catalog: BundleCatalog (source des prix)
    - site_url: URL publique du site, sert à rendre les images absolues et
      à refuser les images hors domaine
    """

    def __init__(self, catalog: BundleCatalog, site_url: str):
        self.catalog = catalog
        self.site_url = (site_url or "").rstrip("/")
        self._site_host = (urlparse(self.site_url).netloc or "").lower()

    def validate_body(self, body: Any) -> Tuple[List[ValidatedCartLine], Attribution]:
        if not isinstance(body, dict):
            raise CheckoutValidationError("Invalid request body")
        lines = self.validate_items(body.get("items"))
        return lines, self.parse_attribution(body.get("fbData"), body.get("gaData"))

    def validate_items(self, items: Any) -> List[ValidatedCartLine]:
        if not isinstance(items, list) or not items:
            raise CheckoutValidationError("Invalid items: must be a non-empty array")
        if len(items) > MAX_ITEMS:
            raise CheckoutValidationError(f"Invalid items: too many items (max {MAX_ITEMS})")
        return [self.validate_item(item, index) for index, item in enumerate(items)]

    def validate_item(self, item: Any, index: int) -> ValidatedCartLine:
        prefix = f"Invalid items[{index}]"
        if not isinstance(item, dict):
            raise CheckoutValidationError(f"{prefix}: must be an object", index)

        values: Dict[str, Any] = {}
        for key, attr in REQUIRED_STRING_FIELDS:
            value = item.get(key)
            if not isinstance(value, str) or not value.strip():
                raise CheckoutValidationError(f"{prefix}.{key}: must be a non-empty string", index)
            if len(value) > MAX_STRING_LENGTH:
                raise CheckoutValidationError(f"{prefix}.{key}: too long", index)
            values[attr] = value

        price = item.get("price")
        if not is_strict_int(price) or price <= 0:
            raise CheckoutValidationError(f"{prefix}.price: must be a positive integer in cents", index)

        quantity = item.get("quantity")
        if not is_strict_int(quantity) or not 1 <= quantity <= MAX_QUANTITY:
            raise CheckoutValidationError(
                f"{prefix}.quantity: must be an integer between 1 and {MAX_QUANTITY}", index
            )

        bundle = self.catalog.get(values["bundle_id"])
        if bundle is None:
            raise CheckoutValidationError(f"{prefix}.bundleId: unknown bundle", index)
        if price != bundle.price:
            raise CheckoutValidationError(f"{prefix}.price: price mismatch", index)

        return ValidatedCartLine(
            price=price,
            quantity=quantity,
            image=self.normalize_image(item.get("image")),
            **values,
        )

    def normalize_image(self, image: Any) -> Optional[str]:
        """
        Retourne une URL absolue sur le domaine du site, sinon None.
        - "/images/x.svg" -> "{site_url}/images/x.svg"
        - "https://{site_host}/x.png" conservée
        - tout le reste (autre domaine, "//host", schéma non http) ignoré
        """
        if not isinstance(image, str) or not image or len(image) > MAX_STRING_LENGTH:
            return None
        if any(ch.isspace() for ch in image):
            return None
        if image.startswith("/"):
            if image.startswith("//") or not self._site_host:
                return None
            return f"{self.site_url}{image}"
        parsed = urlparse(image)
        if parsed.scheme not in ("http", "https"):
            return None
        if not self._site_host or (parsed.netloc or "").lower() != self._site_host:
            return None
        return image

    def parse_attribution(self, fb_data: Any, ga_data: Any = None) -> Attribution:
        ga_client_id = parse_ga_client_id(ga_data)
        if not isinstance(fb_data, dict):
            return Attribution(ga_client_id=ga_client_id)
        values = {}
        for key, attr in ATTRIBUTION_FIELDS:
            value = fb_data.get(key)
            values[attr] = value if _is_valid_string(value, MAX_STRING_LENGTH) else None
        return Attribution(**values, ga_client_id=ga_client_id)


def validate_payment_intent_body(
    body: Any,
    catalog: BundleCatalog,
    allowed_shipping: Optional[List[int]] = None,
) -> PaymentIntentInput:
    """
    Valide un achat mono-bundle (payment intent / express checkout).
    - amount: entier > 0, égal au prix catalogue du bundle
    - shipping: si allowed_shipping est fourni, doit en faire partie; sinon 0 (express)
    - champs texte non vides, <= 200 caractères
    """
    if not isinstance(body, dict):
        raise CheckoutValidationError("Invalid request body")

    amount = body.get("amount")
    if not is_strict_int(amount) or amount <= 0:
        raise CheckoutValidationError("Invalid amount: must be a positive integer in cents")

    shipping = 0
    if allowed_shipping is not None:
        shipping = body.get("shipping")
        if not is_strict_int(shipping) or shipping < 0:
            raise CheckoutValidationError("Invalid shipping: must be a non-negative integer in cents")

    values: Dict[str, str] = {}
    for key, attr in REQUIRED_STRING_FIELDS[2:]:
        value = body.get(key)
        if not isinstance(value, str) or not value.strip():
            raise CheckoutValidationError(f"Invalid {key}: must be a non-empty string")
        if len(value) > MAX_PAYMENT_INTENT_STRING_LENGTH:
            raise CheckoutValidationError(f"Invalid {key}: too long")
        values[attr] = value

    bundle = catalog.get(values["bundle_id"])
    if bundle is None:
        raise CheckoutValidationError("Invalid bundleId: unknown bundle")
    if amount != bundle.price:
        raise CheckoutValidationError("Invalid amount: price mismatch")

    if allowed_shipping is not None and shipping not in allowed_shipping:
        raise CheckoutValidationError("Invalid shipping: unknown shipping rate")

    return PaymentIntentInput(
        amount=amount,
        shipping=shipping,
        ga_client_id=parse_ga_client_id(body.get("gaData")),
        **values,
    )
