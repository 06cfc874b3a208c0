"""Purchase order routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from ims.core.rate_limit import limiter
from ims.core.responses import list_response
from ims.db.session import DbSession
from ims.schemas.purchase import MultiPurchaseCreate, PurchaseCreate, PurchaseUpdate, ReceiptAttach
from ims.services.purchase_service import PurchaseService, PurchaseStateError
from ims.services.receipt_poster import ReceiptPostingError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_purchases(
    request: Request,
    db: DbSession,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900),
    purchase_status: Optional[str] = Query(None, alias="status"),
    purchase_type: Optional[str] = Query(None, alias="type"),
):
    """List purchases, newest first, optionally for one month and/or year."""
    purchases = PurchaseService(db).list_purchases(
        month=month,
        year=year,
        status=purchase_status,
        purchase_type=purchase_type,
    )
    return list_response(purchases)


@router.get("/years")
@limiter.limit("60/minute")
def list_available_years(request: Request, db: DbSession):
    """Years that have at least one dated purchase, newest first."""
    return {"years": PurchaseService(db).available_years()}


@router.get("/reorder-candidates")
@limiter.limit("60/minute")
def list_reorder_candidates(request: Request, db: DbSession):
    """Consumables that need reordering."""
    return list_response(PurchaseService(db).reorder_candidates())


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_purchase(request: Request, db: DbSession, data: PurchaseCreate):
    return PurchaseService(db).create_purchase(data.to_document())


@router.post("/batch", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_multiple_purchases(request: Request, db: DbSession, data: MultiPurchaseCreate):
    """Create one purchase per line for the same supplier and date."""
    doc = data.to_document()
    result = PurchaseService(db).create_multiple(
        supplier=doc["supplier"],
        date=doc["date"],
        items=doc["items"],
        purchase_type=doc["type"],
    )
    if not result["success"]:
        raise HTTPException(status_code=500, detail="Failed to create purchases")
    return result


@router.get("/{purchase_id}")
@limiter.limit("60/minute")
def get_purchase(request: Request, db: DbSession, purchase_id: str):
    return PurchaseService(db).get_purchase(purchase_id)


@router.put("/{purchase_id}")
@limiter.limit("30/minute")
def update_purchase(request: Request, db: DbSession, purchase_id: str, data: PurchaseUpdate):
    return PurchaseService(db).update_purchase(purchase_id, data.to_document(partial=True))


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_purchase(request: Request, db: DbSession, purchase_id: str):
    """Delete a purchase. Inventory already posted by a receipt is left as is."""
    PurchaseService(db).delete_purchase(purchase_id)


@router.post("/{purchase_id}/receive")
@limiter.limit("30/minute")
def receive_purchase(request: Request, db: DbSession, purchase_id: str):
    """Mark a Pending purchase Received and post it to inventory."""
    try:
        return PurchaseService(db).receive_purchase(purchase_id)
    except PurchaseStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReceiptPostingError as e:
        logger.error(f"Receipt posting failed: {e}")
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{purchase_id}/cancel")
@limiter.limit("30/minute")
def cancel_purchase(request: Request, db: DbSession, purchase_id: str):
    try:
        return PurchaseService(db).cancel_purchase(purchase_id)
    except PurchaseStateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{purchase_id}/receipt")
@limiter.limit("30/minute")
def attach_receipt(request: Request, db: DbSession, purchase_id: str, data: ReceiptAttach):
    """Store the name of the uploaded receipt for a purchase."""
    return PurchaseService(db).attach_receipt(purchase_id, data.receipt)
