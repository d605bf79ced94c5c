from fastapi import APIRouter, Depends

from storefront.services import Services, get_services

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root(services: Services = Depends(get_services)):
    return {
        "ok": True,
        "storage": type(services.storage).__name__,
        "auth_strategy": services.session.strategy_name,
        "metrics": services.counters.all(),
    }
