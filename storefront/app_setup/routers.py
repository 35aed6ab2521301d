"""
Registre central des routers.
- API publique: catalog, checkout (session, payment intent, express), discount, analytics
- Webhooks: Stripe
- Admin: commandes, inventaire
- Health
"""
from fastapi import FastAPI
from storefront.catalog import views as catalog_views
from storefront.checkout import views as checkout_views
from storefront.discounts import views as discounts_views
from storefront.analytics import views as analytics_views
from storefront.orders import views as orders_views
from storefront.inventory import views as inventory_views
from storefront.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l’application.
    - L’ordre n’a pas d’impact sauf conflits de chemins (évités par préfixes).
    """
    # API publique
    app.include_router(catalog_views.router)
    app.include_router(checkout_views.router)
    app.include_router(discounts_views.router)
    app.include_router(analytics_views.router)
    # Webhooks
    app.include_router(orders_views.webhook_router)
    # Admin
    app.include_router(orders_views.admin_router)
    app.include_router(inventory_views.router)
    # Health & monitoring
    app.include_router(health_router)
