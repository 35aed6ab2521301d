import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.discounts.service import validate_discount
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/discount", tags=["Discount API"])

class DiscountValidateRequest(BaseModel):
    code: Optional[str] = Field(default=None, max_length=50)
    subtotal: int = Field(default=0, ge=0)

@router.post("/validate", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def validate_discount_code(req: DiscountValidateRequest):
    """
    Valide un code promo pour un sous-total (cents).
    - 400 {valid: false, message} si le code est vide
    - 200 {valid, discountType, discountValue, discountAmount, message} sinon
    """
    if not (req.code or "").strip():
        return JSONResponse({"valid": False, "message": "Please enter a discount code"}, status_code=400)
    result = validate_discount(req.code, req.subtotal)
    logger.info("discount.validate code=%s valid=%s", req.code.strip().upper(), result.valid)
    return JSONResponse(result.to_dict())
