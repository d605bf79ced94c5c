"""
Registre central des routers.
- API v1: cart, catalog, checkout, admin
- Health: /health
"""
from fastapi import FastAPI

from storefront.cart import views as cart_views
from storefront.catalog import views as catalog_views
from storefront.health.router import router as health_router
from storefront.payments import views as payments_views
from storefront.session import views as session_views


def register_routers(app: FastAPI) -> None:
    app.include_router(cart_views.router)
    app.include_router(catalog_views.router)
    app.include_router(payments_views.router)
    app.include_router(session_views.router)
    app.include_router(health_router)
