"""Consumable issuance routes."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status

from ims.core.rate_limit import limiter
from ims.core.responses import list_response
from ims.db.session import DbSession
from ims.schemas.common import IdList
from ims.schemas.inventory import IssueCreate, IssueUpdate, MultiIssueCreate
from ims.services.issuance_service import (
    DiscontinuedItemError,
    InsufficientStockError,
    IssuanceService,
    MultiItemEditError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _rejected(e: Exception) -> HTTPException:
    logger.warning(f"Issuance rejected: {e}")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/")
@limiter.limit("60/minute")
def list_issued_items(
    request: Request,
    db: DbSession,
    department: Optional[str] = None,
    consumable_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
):
    """List issuances, most recent first."""
    items = IssuanceService(db).list_issued_items(
        department=department,
        consumable_id=consumable_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    return list_response(items)


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def issue_item(request: Request, db: DbSession, data: IssueCreate):
    """Issue stock from one consumable."""
    doc = data.to_document()
    try:
        return IssuanceService(db).issue_item(
            consumable_id=doc["consumableId"],
            quantity_issued=doc["quantityIssued"],
            issued_to=doc["issuedTo"],
            department=doc["department"],
            date_issued=doc["dateIssued"],
        )
    except (InsufficientStockError, DiscontinuedItemError) as e:
        raise _rejected(e)


@router.post("/batch", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def issue_multiple(request: Request, db: DbSession, data: MultiIssueCreate):
    """Issue several consumables to one person. Nothing is written if any line fails."""
    doc = data.to_document()
    try:
        records = IssuanceService(db).issue_multiple(
            lines=doc["items"],
            issued_to=doc["issuedTo"],
            department=doc["department"],
            date_issued=doc["dateIssued"],
        )
    except (InsufficientStockError, DiscontinuedItemError) as e:
        raise _rejected(e)
    return list_response(records)


@router.post("/batch-delete")
@limiter.limit("30/minute")
def delete_issued_items(request: Request, db: DbSession, data: IdList):
    """Delete several issuances, returning their stock."""
    deleted = IssuanceService(db).delete_issued_items(data.ids)
    return {"deleted": deleted}


@router.get("/{issue_id}")
@limiter.limit("60/minute")
def get_issued_item(request: Request, db: DbSession, issue_id: str):
    return IssuanceService(db).get_issued_item(issue_id)


@router.put("/{issue_id}")
@limiter.limit("30/minute")
def update_issued_item(request: Request, db: DbSession, issue_id: str, data: IssueUpdate):
    try:
        return IssuanceService(db).update_issued_item(issue_id, data.to_document(partial=True))
    except (InsufficientStockError, DiscontinuedItemError, MultiItemEditError) as e:
        raise _rejected(e)


@router.delete("/{issue_id}")
@limiter.limit("30/minute")
def delete_issued_item(request: Request, db: DbSession, issue_id: str):
    """Delete an issuance after returning its quantity to the consumable."""
    restored = IssuanceService(db).delete_issued_item(issue_id)
    return {"deleted": issue_id, "consumable": restored}
