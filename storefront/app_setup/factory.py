"""
Factory d'application pour les entrypoints (ex: storefront.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional

from fastapi import FastAPI

from storefront.logging_setup import configure_logging
from storefront.services import Services

from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware
from .routers import register_routers


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares (CORS, no-cache)
      - gestionnaires d'exceptions du storefront
      - routers (cart, catalog, checkout, admin, health)
    services: conteneur déjà assemblé (tests); sinon construit au démarrage par le lifespan.
    """
    configure_logging()
    app = FastAPI(title="Storefront", lifespan=lifespan)
    app.state.services = services
    register_basic_middlewares(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
