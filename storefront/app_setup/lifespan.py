"""
Lifespan FastAPI: initialisation/arrêt des services partagés.
- Construit les services depuis la configuration s'ils n'ont pas été injectés (create_app(services=...))
- Lance la vérification périodique d'expiration de la session admin
- À l'arrêt: stoppe la vérification puis ferme client HTTP et stockage (services construits ici uniquement)
"""
from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI

from storefront.services import build_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("uvicorn.error")
    services = getattr(app.state, "services", None)
    owned = services is None
    if owned:
        services = build_services()
        app.state.services = services

    stop = asyncio.Event()
    checker = asyncio.create_task(services.session.run_expiry_checks(stop))
    logger.info("Session expiry checks enabled (every %ss)", services.session.check_interval_seconds)
    try:
        yield
    finally:
        stop.set()
        await checker
        if owned:
            await services.aclose()
            app.state.services = None
