import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.checkout import stripe_client
from storefront.checkout.errors import ConfigurationError
from storefront.orders import repository as orders_repo
from storefront.orders import service as orders_service
from storefront.utils.security import require_admin

logger = logging.getLogger(__name__)
webhook_router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])
admin_router = APIRouter(prefix="/api/admin/orders", tags=["Admin Orders API"])

# module storefront.orders.views
@webhook_router.post("/stripe", include_in_schema=False)
async def stripe_webhook(request: Request):
    """
    Webhook Stripe: transforme les paiements confirmés en commandes.
    - Signature: en-tête stripe-signature + STRIPE_WEBHOOK_SECRET
    - Événements: checkout.session.completed, payment_intent.succeeded
    - Réponses: {"received": true}; 400 signature absente/invalide; 500 secret absent ou échec du traitement
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    try:
        event = stripe_client.construct_event(payload, signature)
    except ConfigurationError as e:
        logger.error("Webhook non configuré: %s", e)
        raise HTTPException(status_code=500, detail="Webhook not configured")
    except Exception as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        order_number = orders_service.handle_event(event)
        logger.info("stripe.webhook type=%s order=%s", event.get("type"), order_number)
    except Exception:
        logger.exception("Erreur stripe_webhook type=%s", event.get("type"))
        raise HTTPException(status_code=500, detail="Webhook handler failure")
    return JSONResponse({"received": True})

class OrderUpdateRequest(BaseModel):
    status: Optional[str] = None
    trackingNumber: Optional[str] = Field(default=None, max_length=100)

@admin_router.get("")
def list_orders(
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: Dict[str, Any] = Depends(require_admin),
):
    if status and status not in orders_service.ORDER_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    try:
        orders = orders_repo.list_orders(status=status, limit=limit, offset=offset)
    except Exception:
        logger.exception("Erreur list_orders")
        raise HTTPException(status_code=500, detail="Failed to fetch orders")
    return {"orders": orders, "limit": limit, "offset": offset}

@admin_router.get("/stats")
def order_stats(user: Dict[str, Any] = Depends(require_admin)):
    try:
        return orders_service.get_order_stats()
    except Exception:
        logger.exception("Erreur order_stats")
        raise HTTPException(status_code=500, detail="Failed to compute order stats")

@admin_router.get("/{order_id}")
def get_order(order_id: str, user: Dict[str, Any] = Depends(require_admin)):
    try:
        order = orders_repo.get_order(order_id)
    except Exception:
        logger.exception("Erreur get_order")
        raise HTTPException(status_code=500, detail="Internal server error")
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"order": order}

@admin_router.patch("/{order_id}")
def patch_order(order_id: str, req: OrderUpdateRequest, user: Dict[str, Any] = Depends(require_admin)):
    """
    Met à jour statut et/ou numéro de suivi.
    - 400 si aucun champ ou statut inconnu, 404 si la commande n'existe pas
    """
    if req.status is None and req.trackingNumber is None:
        raise HTTPException(status_code=400, detail="Status or tracking number is required")
    try:
        order = orders_service.update_order(order_id, status=req.status, tracking_number=req.trackingNumber)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Erreur patch_order")
        raise HTTPException(status_code=500, detail="Failed to update order")
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    logger.info("admin.order.update id=%s by=%s", order_id, user.get("email"))
    return {"order": order}
