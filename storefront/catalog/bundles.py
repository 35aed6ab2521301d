"""
Catalogue des bundles (source de vérité des prix côté serveur).
- Les prix sont en cents (int) et ne proviennent jamais du client.
- Le catalogue est immuable après construction et injecté dans le validateur.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Iterator, List, Optional, Tuple

# module storefront.catalog.bundles
@dataclass(frozen=True)
class Bundle:
    id: str
    name: str
    price: int
    compare_at_price: int
    sku: str
    description: str = ""
    includes: Tuple[str, ...] = field(default_factory=tuple)
    badge: Optional[str] = None

    def __post_init__(self):
        # 0 < price <= compare_at_price
        for name in ("price", "compare_at_price"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Bundle {self.id}: {name} doit être un entier (cents)")
        if self.price <= 0:
            raise ValueError(f"Bundle {self.id}: price doit être > 0")
        if self.price > self.compare_at_price:
            raise ValueError(f"Bundle {self.id}: price > compare_at_price")


BUNDLES: Tuple[Bundle, ...] = (
    Bundle(
        id="card-only",
        name="Card Only",
        price=2395,
        compare_at_price=2995,
        sku="PMH-CARD",
        description="Simple, sleek, unforgettable",
        includes=("Premium Holographic Card", "Envelope"),
    ),
    Bundle(
        id="love-pack",
        name="Love Pack",
        price=3795,
        compare_at_price=4995,
        sku="PMH-LOVEPACK",
        description="Card + premium display case",
        includes=("Premium Holographic Card", "Display Case", "Display Stand", "Envelope"),
        badge="Most Popular",
    ),
    Bundle(
        id="deluxe-love",
        name="Deluxe Love",
        price=5295,
        compare_at_price=7495,
        sku="PMH-DELUXE",
        description="The ultimate gift package",
        includes=(
            "Premium Holographic Card",
            "Premium Display Case",
            "Premium Stand",
            "Luxury Gift Box",
            "Tissue Paper",
            "Envelope",
        ),
        badge="Best Value",
    ),
)


class BundleCatalog:
    """
    Table immuable bundle_id -> Bundle.
    - get(bundle_id): Bundle ou None
    - price_of(bundle_id): prix catalogue en cents (KeyError si inconnu)
    """

    def __init__(self, bundles: Iterable[Bundle]):
        by_id = {}
        for bundle in bundles:
            if not isinstance(bundle, Bundle):
                raise ValueError("BundleCatalog n'accepte que des Bundle")
            if bundle.id in by_id:
                raise ValueError(f"Bundle en double: {bundle.id}")
            by_id[bundle.id] = bundle
        self._by_id = MappingProxyType(by_id)

    def get(self, bundle_id: str) -> Optional[Bundle]:
        return self._by_id.get(bundle_id)

    def price_of(self, bundle_id: str) -> int:
        return self._by_id[bundle_id].price

    def ids(self) -> List[str]:
        return list(self._by_id.keys())

    def __contains__(self, bundle_id) -> bool:
        return bundle_id in self._by_id

    def __iter__(self) -> Iterator[Bundle]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


_DEFAULT_CATALOG = BundleCatalog(BUNDLES)

def default_catalog() -> BundleCatalog:
    return _DEFAULT_CATALOG

def get_bundle(bundle_id: str) -> Optional[Bundle]:
    return _DEFAULT_CATALOG.get(bundle_id)

def format_price(cents: int) -> str:
    """2395 -> "$23.95" """
    return f"${cents / 100:.2f}"

def calculate_savings(bundle: Bundle) -> int:
    return bundle.compare_at_price - bundle.price

def bundle_to_dict(bundle: Bundle) -> dict:
    return {
        "id": bundle.id,
        "name": bundle.name,
        "price": bundle.price,
        "compareAtPrice": bundle.compare_at_price,
        "sku": bundle.sku,
        "description": bundle.description,
        "includes": list(bundle.includes),
        "badge": bundle.badge,
        "savings": calculate_savings(bundle),
        "formattedPrice": format_price(bundle.price),
    }
