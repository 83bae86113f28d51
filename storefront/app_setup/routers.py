"""
Registre central des routers (API boutique + health).
- Sacola: cart_views (session)
- Checkout: payments_views (Pagar.me), inventory_views, shipping_views
- Pós-pagamento: orders_views (verify + webhook), cron_views
- ERP: erp_views (Bling: OAuth, renouvellement des jetons, catalogue)
- Health: health_router
"""
from fastapi import FastAPI

from storefront.cart import views as cart_views
from storefront.cron import views as cron_views
from storefront.erp import views as erp_views
from storefront.health.router import router as health_router
from storefront.inventory import views as inventory_views
from storefront.orders import views as orders_views
from storefront.payments import views as payments_views
from storefront.shipping import views as shipping_views


def register_routers(app: FastAPI) -> None:
    app.include_router(cart_views.router)
    app.include_router(inventory_views.router)
    app.include_router(shipping_views.router)
    app.include_router(payments_views.router)
    app.include_router(orders_views.router)
    app.include_router(cron_views.router)
    app.include_router(erp_views.router)
    # Health & monitoring
    app.include_router(health_router)
