from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from storefront.errors import AuthError
from storefront.services import Services, get_services

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


@router.post("/login")
async def api_login(req: LoginRequest, services: Services = Depends(get_services)):
    """Point d'entrée de connexion admin (API JSON). 401 si la stratégie configurée refuse."""
    result = await services.session.login(req.email, req.password)
    if not result.success:
        raise AuthError(result.error or "Identifiants invalides")
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
        "user": result.user,
        "expires_at": result.session.expires_at,
    }


@router.post("/logout")
def api_logout(services: Services = Depends(get_services)):
    services.session.logout()
    return {"ok": True}


@router.get("/session")
def api_session(services: Services = Depends(get_services)):
    session = services.session
    redirect_to = session.protect_route()
    return {
        "authenticated": redirect_to is None,
        "user": session.current_user,
        "expires_at": session.session.expires_at if session.session else None,
        "redirect_to": redirect_to,
    }
