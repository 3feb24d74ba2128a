"""
Catalog endpoints for API v1.

The catalog listing is public.  Administrators add service types and
providers offer services under them.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from helpapp_api.app.api.deps import get_catalog_service
from helpapp_api.app.core.security import Identity, require_role
from helpapp_api.app.schemas.service import (
    ServiceCreate,
    ServiceRead,
    ServiceTypeCreate,
    ServiceTypeRead,
    ServiceTypeWithServices,
)
from helpapp_api.app.schemas.user import Role
from helpapp_api.app.services.catalog_service import CatalogService


router = APIRouter()


@router.get("", response_model=List[ServiceTypeWithServices])
async def list_services(
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[ServiceTypeWithServices]:
    """Return all service types with their services and providers."""
    return await catalog.list_all()


@router.post("", response_model=ServiceTypeRead, status_code=status.HTTP_201_CREATED)
async def create_service_type(
    data: ServiceTypeCreate,
    identity: Identity = Depends(require_role(Role.ADMIN)),
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceTypeRead:
    """Create a service type.  Admin only; names must be unique."""
    return await catalog.create_service_type(data)


@router.post("/offerings", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    identity: Identity = Depends(require_role(Role.PROVIDER)),
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceRead:
    """Offer a new service under an existing service type.  Provider only."""
    return await catalog.create_service(identity.user_id, data)
