"""
Registre central des routers.
- API v1: checkout, webhooks, orders
- Health: health_router
"""
from fastapi import FastAPI

from storefront.checkout import views as checkout_views
from storefront.health.router import router as health_router
from storefront.orders import views as orders_views
from storefront.webhooks import views as webhooks_views


def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(checkout_views.router)
    app.include_router(webhooks_views.router)
    app.include_router(orders_views.router)
    # Health & monitoring
    app.include_router(health_router)
