import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront import config
from storefront.catalog.bundles import BundleCatalog, default_catalog
from storefront.checkout import service as checkout_service
from storefront.checkout.errors import CheckoutValidationError, ConfigurationError, PaymentProviderError
from storefront.checkout.validator import CartValidator
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Checkout API"])

def get_catalog() -> BundleCatalog:
    return default_catalog()

def get_cart_validator(catalog: BundleCatalog = Depends(get_catalog)) -> CartValidator:
    return CartValidator(catalog, config.SITE_URL)

async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid request body")

# module storefront.checkout.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(request: Request, validator: CartValidator = Depends(get_cart_validator)):
    """
    Crée une session Stripe Checkout hébergée pour le panier.
    - Entrée JSON: { "items": [ {name, description, price, quantity, designId, designName,
      bundleId, bundleName, bundleSku, image?}, ... ], "fbData"?: {fbc, fbp, eventId} }
    - Réponses:
      200 {url, id, fbEventId}
      400 {error} si le panier est invalide (aucun appel Stripe)
      500 {error, details} si configuration manquante ou erreur Stripe
    """
    body = await _read_json(request)
    try:
        result = checkout_service.create_checkout_session(body, validator)
        return JSONResponse(result)
    except CheckoutValidationError as e:
        logger.info("checkout rejected index=%s reason=%s", e.index, e.message)
        raise HTTPException(status_code=400, detail=e.message)
    except (ConfigurationError, PaymentProviderError) as e:
        logger.error("Erreur create_checkout_session: %s", e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to create checkout session", "details": str(e)},
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur create_checkout_session")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to create checkout session", "details": "Unknown error"},
        )

def _payment_intent_response(fn, body: Any, catalog: BundleCatalog, label: str):
    try:
        return JSONResponse(fn(body, catalog))
    except CheckoutValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception:
        logger.exception("Erreur %s", label)
        raise HTTPException(status_code=500, detail="Failed to create payment intent")

@router.post("/payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_payment_intent(request: Request, catalog: BundleCatalog = Depends(get_catalog)):
    """
    Payment intent du checkout personnalisé.
    - Entrée JSON: {amount, shipping, designId, designName, bundleId, bundleName, bundleSku}
    - Réponses: 200 {clientSecret, paymentIntentId, totalAmount}, 400 {error}, 500 {error}
    """
    body = await _read_json(request)
    return _payment_intent_response(checkout_service.create_payment_intent, body, catalog, "create_payment_intent")

@router.post("/express-checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_express_checkout(request: Request, catalog: BundleCatalog = Depends(get_catalog)):
    """Express checkout (wallets): même validation, livraison offerte."""
    body = await _read_json(request)
    return _payment_intent_response(
        checkout_service.create_express_payment_intent, body, catalog, "create_express_checkout"
    )
