"""Fixed asset, consumable and issuance schemas."""

from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import Field

from ims.schemas.common import DocumentSchema

AssetStatusValue = Literal["Operational", "Maintenance", "Non-operational"]


# ==================== FIXED ASSETS ====================

class FixedAssetCreate(DocumentSchema):
    """Fixed asset creation schema. The FA-NNN id is assigned on save."""

    name: str = Field(..., min_length=1)
    serial: str = ""
    category: str = ""
    location: str = ""
    status: AssetStatusValue = "Operational"
    date_acquired: Optional[date] = None
    acquisition_cost: Optional[float] = Field(None, ge=0)
    asset_class: str = ""
    qty_functioning: int = Field(0, ge=0)
    qty_not_functioning: int = Field(0, ge=0)


class FixedAssetUpdate(DocumentSchema):
    """Fixed asset update schema."""

    name: Optional[str] = Field(None, min_length=1)
    serial: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    status: Optional[AssetStatusValue] = None
    date_acquired: Optional[date] = None
    acquisition_cost: Optional[float] = Field(None, ge=0)
    asset_class: Optional[str] = None
    qty_functioning: Optional[int] = Field(None, ge=0)
    qty_not_functioning: Optional[int] = Field(None, ge=0)


# ==================== CONSUMABLES ====================

class ConsumableCreate(DocumentSchema):
    """Consumable creation schema. Value and status are derived on save."""

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    unit_price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    reorder_level: int = Field(0, ge=0)
    reorder_time: int = Field(0, ge=0)
    date_purchased: Optional[date] = None
    discontinued: bool = False


class ConsumableUpdate(DocumentSchema):
    """Consumable update schema."""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    unit_price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    reorder_level: Optional[int] = Field(None, ge=0)
    reorder_time: Optional[int] = Field(None, ge=0)
    date_purchased: Optional[date] = None
    discontinued: Optional[bool] = None


# ==================== ISSUANCES ====================

class IssueCreate(DocumentSchema):
    consumable_id: str = Field(..., min_length=1)
    quantity_issued: int = Field(..., gt=0)
    issued_to: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    date_issued: date


class IssueLine(DocumentSchema):
    consumable_id: str = Field(..., min_length=1)
    quantity_issued: int = Field(..., gt=0)


class MultiIssueCreate(DocumentSchema):
    """Several consumables issued to one person in one action."""

    issued_to: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    date_issued: date
    items: List[IssueLine] = Field(..., min_length=1)


class IssueUpdate(DocumentSchema):
    issued_to: Optional[str] = Field(None, min_length=1)
    department: Optional[str] = Field(None, min_length=1)
    date_issued: Optional[date] = None
    quantity_issued: Optional[int] = Field(None, gt=0)
