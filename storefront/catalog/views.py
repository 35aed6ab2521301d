from fastapi import APIRouter
from fastapi.responses import JSONResponse

from storefront.catalog.bundles import bundle_to_dict, default_catalog
from storefront.catalog.product import PRODUCT

router = APIRouter(prefix="/api/catalog", tags=["Catalog API"])

# module storefront.catalog.views
@router.get("/bundles")
def list_bundles():
    """Liste publique des bundles (prix catalogue + économies)."""
    return JSONResponse({"bundles": [bundle_to_dict(b) for b in default_catalog()]})

@router.get("/product")
def get_product():
    return JSONResponse(PRODUCT)
