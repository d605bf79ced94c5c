from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.services import Services, get_services

from .models import RESOURCES

router = APIRouter(prefix="/api/v1/catalog", tags=["Catalog"])


def _require_resource(resource: str) -> str:
    if resource not in RESOURCES:
        raise HTTPException(status_code=404, detail=f"Ressource inconnue: {resource}")
    return resource


@router.get("/{resource}")
async def list_resource(
    resource: str,
    type: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    services: Services = Depends(get_services),
):
    """
    Liste une collection (API, sinon snapshot statique).
    - Toujours 200: une liste vide signifie « aucune donnée disponible »
    """
    _require_resource(resource)
    filters = {k: v for k, v in {"type": type, "status": status, "limit": limit, "offset": offset}.items() if v is not None}
    items = await services.loader.load_collection(resource, filters)
    return {"items": [it.model_dump() for it in items], "count": len(items)}


@router.get("/{resource}/{item_id}")
async def get_resource(resource: str, item_id: str, services: Services = Depends(get_services)):
    _require_resource(resource)
    item = await services.loader.get_by_id(resource, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Introuvable")
    return item.model_dump()
