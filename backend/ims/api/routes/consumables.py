"""Consumable stock routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from ims.core.rate_limit import limiter
from ims.core.responses import list_response
from ims.db.session import DbSession
from ims.schemas.inventory import ConsumableCreate, ConsumableUpdate
from ims.services.inventory_service import InventoryService
from ims.services.issuance_service import IssuanceService
from ims.services.stock_rules import low_stock

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_consumables(
    request: Request,
    db: DbSession,
    category: Optional[str] = None,
    needs_reorder: bool = False,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
    include_discontinued: bool = True,
):
    """List consumables ordered by category.

    ``needs_reorder`` keeps items at or below their reorder level.
    """
    consumables = InventoryService(db).list_consumables(
        category=category,
        needs_reorder=needs_reorder,
        date_from=date_from,
        date_to=date_to,
        search=search,
        include_discontinued=include_discontinued,
    )
    return list_response(consumables)


@router.get("/low-stock")
@limiter.limit("60/minute")
def list_low_stock(request: Request, db: DbSession):
    """Active consumables strictly below their reorder level."""
    return list_response(low_stock(InventoryService(db).list_consumables()))


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_consumable(request: Request, db: DbSession, data: ConsumableCreate):
    """Add a consumable. The CON-NNN id, value and status are assigned automatically."""
    return InventoryService(db).create_consumable(data.to_document())


@router.get("/{consumable_id}")
@limiter.limit("60/minute")
def get_consumable(request: Request, db: DbSession, consumable_id: str):
    return InventoryService(db).get_consumable(consumable_id)


@router.get("/{consumable_id}/availability")
@limiter.limit("60/minute")
def check_availability(
    request: Request,
    db: DbSession,
    consumable_id: str,
    quantity: int = Query(..., gt=0),
):
    """Check whether a quantity can be issued from this consumable."""
    return IssuanceService(db).validate_consumable_quantity(consumable_id, quantity)


@router.put("/{consumable_id}")
@limiter.limit("30/minute")
def update_consumable(request: Request, db: DbSession, consumable_id: str, data: ConsumableUpdate):
    return InventoryService(db).update_consumable(consumable_id, data.to_document(partial=True))


@router.delete("/{consumable_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_consumable(request: Request, db: DbSession, consumable_id: str):
    InventoryService(db).delete_consumable(consumable_id)
