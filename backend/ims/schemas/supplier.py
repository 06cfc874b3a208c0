"""Supplier, supplier order and crew issuance schemas."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import EmailStr, Field

from ims.schemas.common import DocumentSchema


class Variant(DocumentSchema):
    id: Optional[str] = None
    label: str = Field(..., min_length=1)
    price: float = Field(0, ge=0)


class ItemWithVariants(DocumentSchema):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    variants: List[Variant] = []


class SupplierCreate(DocumentSchema):
    """Supplier creation schema."""

    tin: str = ""
    name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    items: List[ItemWithVariants] = []


class SupplierUpdate(DocumentSchema):
    """Supplier update schema."""

    tin: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    items: Optional[List[ItemWithVariants]] = None


# ==================== SUPPLIER ORDERS ====================

class CurrentPurchaseCreate(DocumentSchema):
    supplier_id: str = Field(..., min_length=1)
    supplier_name: str = Field(..., min_length=1)
    item: str = Field(..., min_length=1)
    variant: str = Field(..., min_length=1)
    unit_price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    total: Optional[float] = Field(None, ge=0)


# ==================== CREW ISSUANCES ====================

class CrewIssueLine(DocumentSchema):
    item_name: str = Field(..., min_length=1)
    variant: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class CrewIssueCreate(DocumentSchema):
    """Supplier stock handed to a crew member."""

    supplier_id: str = Field(..., min_length=1)
    crew_name: str = Field(..., min_length=1)
    issued_date: date
    items: List[CrewIssueLine] = Field(..., min_length=1)


class CrewIssueUpdate(DocumentSchema):
    quantity: int = Field(..., ge=1)
