import logging
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from storefront.inventory import service as inventory_service
from storefront.utils.security import require_admin

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/inventory", tags=["Admin Inventory API"])

class InventoryUpdateRequest(BaseModel):
    id: Optional[str] = None
    quantity: Optional[int] = None
    adjustment: Optional[int] = None
    adjustmentType: Optional[Literal["add", "remove"]] = None
    threshold: Optional[int] = None
    reason: Optional[str] = Field(default=None, max_length=200)

@router.get("")
def get_inventory(
    includeAdjustments: bool = Query(default=False),
    inventoryId: Optional[str] = Query(default=None),
    user: Dict[str, Any] = Depends(require_admin),
):
    try:
        response: Dict[str, Any] = {"inventory": inventory_service.list_inventory()}
        if includeAdjustments:
            response["adjustments"] = inventory_service.get_adjustments(inventoryId)
        return response
    except Exception:
        logger.exception("Erreur get_inventory")
        raise HTTPException(status_code=500, detail="Failed to fetch inventory")

@router.get("/low-stock")
def get_low_stock(user: Dict[str, Any] = Depends(require_admin)):
    return {"inventory": inventory_service.low_stock_items()}

@router.patch("")
def patch_inventory(req: InventoryUpdateRequest, user: Dict[str, Any] = Depends(require_admin)):
    """
    Mise à jour d'un article de stock. Une seule opération par requête, par priorité:
    1) threshold: seuil de stock bas
    2) adjustment + adjustmentType: ajout / retrait
    3) quantity: quantité exacte
    """
    if not req.id:
        raise HTTPException(status_code=400, detail="Inventory item ID is required")
    try:
        if req.threshold is not None:
            item = inventory_service.update_threshold(req.id, req.threshold)
        elif req.adjustment is not None and req.adjustmentType:
            item = inventory_service.adjust(req.id, req.adjustment, req.adjustmentType, req.reason)
        elif req.quantity is not None:
            item = inventory_service.set_quantity(req.id, req.quantity, req.reason or "Manual quantity update")
        else:
            raise HTTPException(status_code=400, detail="Quantity, adjustment, or threshold is required")
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur patch_inventory")
        raise HTTPException(status_code=500, detail="Failed to update inventory")
    if item is None:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    logger.info("admin.inventory.update id=%s by=%s", req.id, user.get("email"))
    return {"item": item}
