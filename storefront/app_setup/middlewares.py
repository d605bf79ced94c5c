"""
Middlewares transverses de l'application.
- register_basic_middlewares: CORS selon CORS_ORIGINS.
- register_no_cache_middleware: empêche la mise en cache des réponses admin et checkout.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import CORS_ORIGINS

NO_CACHE_PREFIXES = ("/api/v1/admin", "/api/v1/checkout", "/api/v1/cart")


def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_cache(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        return response
