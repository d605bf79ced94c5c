"""
Gestionnaires d'exceptions: traduit la taxonomie du storefront en réponses HTTP.
- ValidationError -> 400
- AuthError / SessionExpiredError -> 401 (redirection vers la page de login pour un client HTML hors /api/*)
- PreChargePaymentError -> 402 {retryable: true}
- PostChargeUnsettledError -> 409 {retryable: false, support: true, intent_id}
- NetworkError -> 502
"""
import urllib.parse

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER

from storefront.config import ADMIN_LOGIN_PATH
from storefront.errors import (
    AuthError,
    NetworkError,
    PaymentError,
    PostChargeUnsettledError,
    PreChargePaymentError,
    SessionExpiredError,
    StorefrontError,
    ValidationError,
)


def _wants_html(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept and not request.url.path.startswith("/api/")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error(request: Request, exc: AuthError):
        if _wants_html(request):
            target = getattr(exc, "redirect_to", None) or ADMIN_LOGIN_PATH
            msg = urllib.parse.quote_plus(exc.message or "Veuillez vous connecter")
            return RedirectResponse(url=f"{target}?error={msg}", status_code=HTTP_303_SEE_OTHER)
        content = {"detail": exc.message or "Non authentifié"}
        if isinstance(exc, SessionExpiredError):
            content["redirect_to"] = exc.redirect_to
        return JSONResponse(status_code=401, content=content)

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": exc.message})

    @app.exception_handler(PaymentError)
    async def payment_error(request: Request, exc: PaymentError):
        if isinstance(exc, PostChargeUnsettledError):
            return JSONResponse(
                status_code=409,
                content={"detail": exc.message, "retryable": False, "support": True, "intent_id": exc.intent_id},
            )
        status = 402 if isinstance(exc, PreChargePaymentError) else 400
        return JSONResponse(status_code=status, content={"detail": exc.message, "retryable": exc.retryable})

    @app.exception_handler(NetworkError)
    async def network_error(request: Request, exc: NetworkError):
        return JSONResponse(status_code=502, content={"detail": exc.message or "Service indisponible"})

    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        return JSONResponse(status_code=500, content={"detail": exc.message or "Erreur interne"})
