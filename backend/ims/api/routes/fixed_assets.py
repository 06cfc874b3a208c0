"""Fixed asset routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from ims.core.rate_limit import limiter
from ims.core.responses import list_response
from ims.db.session import DbSession
from ims.schemas.inventory import FixedAssetCreate, FixedAssetUpdate
from ims.services.inventory_service import InventoryService

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_fixed_assets(
    request: Request,
    db: DbSession,
    asset_class: Optional[str] = None,
    asset_status: Optional[str] = Query(None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
):
    """List fixed assets ordered by asset number."""
    assets = InventoryService(db).list_fixed_assets(
        asset_class=asset_class,
        status=asset_status,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    return list_response(assets)


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_fixed_asset(request: Request, db: DbSession, data: FixedAssetCreate):
    """Register a fixed asset. The FA-NNN number is assigned automatically."""
    return InventoryService(db).create_fixed_asset(data.to_document())


@router.get("/{asset_id}")
@limiter.limit("60/minute")
def get_fixed_asset(request: Request, db: DbSession, asset_id: str):
    return InventoryService(db).get_fixed_asset(asset_id)


@router.put("/{asset_id}")
@limiter.limit("30/minute")
def update_fixed_asset(request: Request, db: DbSession, asset_id: str, data: FixedAssetUpdate):
    return InventoryService(db).update_fixed_asset(asset_id, data.to_document(partial=True))


@router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_fixed_asset(request: Request, db: DbSession, asset_id: str):
    InventoryService(db).delete_fixed_asset(asset_id)
