"""Supplier routes."""

from typing import Optional

from fastapi import APIRouter, Request, status

from ims.core.rate_limit import limiter
from ims.core.responses import list_response
from ims.db.session import DbSession
from ims.schemas.supplier import ItemWithVariants, SupplierCreate, SupplierUpdate
from ims.services.supplier_service import SupplierService

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_suppliers(request: Request, db: DbSession, search: Optional[str] = None):
    return list_response(SupplierService(db).list_suppliers(search=search))


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_supplier(request: Request, db: DbSession, data: SupplierCreate):
    """Add a supplier with its item and variant catalog."""
    return SupplierService(db).create_supplier(data.to_document())


@router.get("/{supplier_id}")
@limiter.limit("60/minute")
def get_supplier(request: Request, db: DbSession, supplier_id: str):
    return SupplierService(db).get_supplier(supplier_id)


@router.put("/{supplier_id}")
@limiter.limit("30/minute")
def update_supplier(request: Request, db: DbSession, supplier_id: str, data: SupplierUpdate):
    return SupplierService(db).update_supplier(supplier_id, data.to_document(partial=True))


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_supplier(request: Request, db: DbSession, supplier_id: str):
    SupplierService(db).delete_supplier(supplier_id)


@router.put("/{supplier_id}/items/{item_id}")
@limiter.limit("30/minute")
def update_supplier_item(
    request: Request,
    db: DbSession,
    supplier_id: str,
    item_id: str,
    data: ItemWithVariants,
):
    """Replace the name and variants of one catalog item."""
    return SupplierService(db).update_supplier_item_variants(supplier_id, item_id, data.to_document())
