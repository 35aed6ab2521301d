"""
Stock par bundle: données initiales et statut de disponibilité.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List

from storefront.catalog.bundles import default_catalog
from storefront.catalog.product import PRODUCT

IN_STOCK = "in_stock"
LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"
ADJUSTMENT_TYPES = ("add", "remove", "set")
DEFAULT_LOW_STOCK_THRESHOLD = 10

_INITIAL_QUANTITIES = {"card-only": 25, "love-pack": 15, "deluxe-love": 8}
_INITIAL_RESERVED = {"love-pack": 2}

def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def initial_inventory() -> List[Dict[str, Any]]:
    now = utcnow_iso()
    return [
        {
            "id": f"inv-{bundle.id}",
            "sku": bundle.sku,
            "product_id": PRODUCT["id"],
            "product_name": PRODUCT["name"],
            "bundle_id": bundle.id,
            "bundle_name": bundle.name,
            "quantity": _INITIAL_QUANTITIES.get(bundle.id, 0),
            "reserved": _INITIAL_RESERVED.get(bundle.id, 0),
            "low_stock_threshold": DEFAULT_LOW_STOCK_THRESHOLD,
            "track_inventory": True,
            "allow_backorder": False,
            "updated_at": now,
        }
        for bundle in default_catalog()
    ]

def available_stock(item: Dict[str, Any]) -> int:
    return max(0, int(item.get("quantity") or 0) - int(item.get("reserved") or 0))

def stock_status(item: Dict[str, Any]) -> str:
    available = int(item.get("quantity") or 0) - int(item.get("reserved") or 0)
    if available <= 0:
        return OUT_OF_STOCK
    if available <= int(item.get("low_stock_threshold") or 0):
        return LOW_STOCK
    return IN_STOCK

def with_stock_status(item: Dict[str, Any]) -> Dict[str, Any]:
    return {**item, "available": available_stock(item), "stock_status": stock_status(item)}
