"""Supplier stock routes: crew issuances and the derived supplier inventory."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Request, status

from ims.core.rate_limit import limiter
from ims.core.responses import list_response
from ims.db.session import DbSession
from ims.schemas.supplier import CrewIssueCreate, CrewIssueUpdate
from ims.services.supplier_service import SupplierService

router = APIRouter()


@router.get("/issued")
@limiter.limit("60/minute")
def list_crew_issues(
    request: Request,
    db: DbSession,
    supplier_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
):
    issues = SupplierService(db).list_crew_issues(
        supplier_id=supplier_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    return list_response(issues)


@router.post("/issued", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def issue_to_crew(request: Request, db: DbSession, data: CrewIssueCreate):
    """Record supplier items handed to a crew member."""
    doc = data.to_document()
    records = SupplierService(db).issue_to_crew(
        supplier_id=doc["supplierId"],
        crew_name=doc["crewName"],
        issued_date=doc["issuedDate"],
        lines=doc["items"],
    )
    return list_response(records)


@router.put("/issued/{issue_id}")
@limiter.limit("30/minute")
def update_crew_issue(request: Request, db: DbSession, issue_id: str, data: CrewIssueUpdate):
    return SupplierService(db).update_crew_issue_quantity(issue_id, data.quantity)


@router.delete("/issued/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_crew_issue(request: Request, db: DbSession, issue_id: str):
    SupplierService(db).delete_crew_issue(issue_id)


@router.get("/inventory")
@limiter.limit("60/minute")
def supplier_inventory(request: Request, db: DbSession, supplier_id: Optional[str] = None):
    """Stock on hand per supplier item variant, received minus issued."""
    return list_response(SupplierService(db).supplier_inventory(supplier_id=supplier_id))
