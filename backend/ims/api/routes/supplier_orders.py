"""Supplier order routes: current purchases and purchase history."""

from typing import Optional

from fastapi import APIRouter, Request, status

from ims.core.rate_limit import limiter
from ims.core.responses import list_response
from ims.db.session import DbSession
from ims.schemas.common import IdList
from ims.schemas.supplier import CurrentPurchaseCreate
from ims.services.supplier_service import SupplierService

router = APIRouter()


@router.get("/current")
@limiter.limit("60/minute")
def list_current_purchases(request: Request, db: DbSession, supplier_id: Optional[str] = None):
    return list_response(SupplierService(db).list_current_purchases(supplier_id=supplier_id))


@router.post("/current", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def add_current_purchase(request: Request, db: DbSession, data: CurrentPurchaseCreate):
    """Add a pending order line for a supplier item variant."""
    return SupplierService(db).add_current_purchase(data.to_document())


@router.post("/current/order")
@limiter.limit("30/minute")
def mark_multiple_ordered(request: Request, db: DbSession, data: IdList):
    """Mark several current purchases as ordered."""
    return list_response(SupplierService(db).mark_multiple_ordered(data.ids))


@router.post("/current/{purchase_id}/order")
@limiter.limit("30/minute")
def mark_ordered(request: Request, db: DbSession, purchase_id: str):
    return SupplierService(db).mark_ordered(purchase_id)


@router.post("/current/{purchase_id}/receive")
@limiter.limit("30/minute")
def receive_current_purchase(request: Request, db: DbSession, purchase_id: str):
    """Move a current purchase into purchase history."""
    return SupplierService(db).receive_current_purchase(purchase_id)


@router.delete("/current/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_current_purchase(request: Request, db: DbSession, purchase_id: str):
    SupplierService(db).delete_current_purchase(purchase_id)


@router.get("/history")
@limiter.limit("60/minute")
def list_purchase_history(request: Request, db: DbSession, supplier_id: Optional[str] = None):
    """Received supplier orders, most recent first."""
    return list_response(SupplierService(db).list_purchase_history(supplier_id=supplier_id))
