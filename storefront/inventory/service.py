import logging
from typing import Any, Dict, List, Optional

from storefront.inventory import repository
from storefront.inventory.models import LOW_STOCK, OUT_OF_STOCK, stock_status, with_stock_status

logger = logging.getLogger(__name__)

ADJUSTMENTS_LIMIT = 50

# module storefront.inventory.service
def list_inventory() -> List[Dict[str, Any]]:
    return [with_stock_status(i) for i in repository.list_items()]

def get_item(item_id: str) -> Optional[Dict[str, Any]]:
    item = repository.get_item(item_id)
    return with_stock_status(item) if item else None

def set_quantity(item_id: str, quantity: int, reason: str = "Manual quantity update") -> Optional[Dict[str, Any]]:
    """
    Fixe la quantité (plancher 0) et journalise un ajustement 'set'.
    Retourne None si l'article n'existe pas.
    """
    current = repository.get_item(item_id)
    if not current:
        return None
    previous = int(current.get("quantity") or 0)
    new_quantity = max(0, int(quantity))
    updated = repository.update_item(item_id, {"quantity": new_quantity})
    repository.log_adjustment({
        "inventory_id": item_id,
        "adjustment_type": "set",
        "quantity_change": new_quantity - previous,
        "previous_quantity": previous,
        "new_quantity": new_quantity,
        "reason": reason,
    })
    logger.info("inventory.set id=%s %s->%s", item_id, previous, new_quantity)
    return with_stock_status(updated) if updated else None

def adjust(item_id: str, amount: int, adjustment_type: str, reason: Optional[str] = None) -> Optional[Dict[str, Any]]:
    if adjustment_type not in ("add", "remove"):
        raise ValueError(f"Invalid adjustmentType: {adjustment_type}")
    current = repository.get_item(item_id)
    if not current:
        return None
    delta = abs(int(amount))
    quantity = int(current.get("quantity") or 0)
    new_quantity = quantity + delta if adjustment_type == "add" else quantity - delta
    if reason is None:
        reason = f"{'Added' if adjustment_type == 'add' else 'Removed'} {delta} units"
    return set_quantity(item_id, new_quantity, reason)

def update_threshold(item_id: str, threshold: int) -> Optional[Dict[str, Any]]:
    if not repository.get_item(item_id):
        return None
    updated = repository.update_item(item_id, {"low_stock_threshold": max(0, int(threshold))})
    return with_stock_status(updated) if updated else None

def get_adjustments(inventory_id: Optional[str] = None, limit: int = ADJUSTMENTS_LIMIT) -> List[Dict[str, Any]]:
    return repository.list_adjustments(inventory_id, limit)

def low_stock_items() -> List[Dict[str, Any]]:
    return [with_stock_status(i) for i in repository.list_items() if stock_status(i) in (LOW_STOCK, OUT_OF_STOCK)]
