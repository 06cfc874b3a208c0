"""Purchase order schemas."""

import datetime as dt
from typing import List, Literal, Optional, Union

from pydantic import Field

from ims.schemas.common import DocumentSchema

PurchaseTypeValue = Literal["consumable", "fixed-asset"]

# Free text such as "5 boxes" is accepted; the digits are used when received
QuantityValue = Union[int, float, str]


class PurchaseCreate(DocumentSchema):
    """Purchase creation schema. New purchases always start Pending."""

    item: str = Field(..., min_length=1)
    quantity: QuantityValue
    supplier: str = Field(..., min_length=1)
    unit_price: float = Field(0, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    date: dt.date
    type: PurchaseTypeValue
    receipt: Optional[str] = None
    category: Optional[str] = None
    consumable_id: Optional[str] = None
    serial_number: Optional[str] = None
    condition: Optional[Literal["functioning", "non-functioning"]] = None
    asset_class: Optional[str] = None


class PurchaseUpdate(DocumentSchema):
    """Purchase update schema. Status changes go through receive/cancel."""

    item: Optional[str] = Field(None, min_length=1)
    quantity: Optional[QuantityValue] = None
    supplier: Optional[str] = Field(None, min_length=1)
    unit_price: Optional[float] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    date: Optional[dt.date] = None
    type: Optional[PurchaseTypeValue] = None
    category: Optional[str] = None
    consumable_id: Optional[str] = None
    serial_number: Optional[str] = None
    condition: Optional[Literal["functioning", "non-functioning"]] = None
    asset_class: Optional[str] = None


class PurchaseLine(DocumentSchema):
    item_name: str = Field(..., min_length=1)
    quantity: QuantityValue
    unit_price: float = Field(0, ge=0)
    category: Optional[str] = None
    serial_number: Optional[str] = None
    asset_class: Optional[str] = None
    consumable_id: Optional[str] = None


class MultiPurchaseCreate(DocumentSchema):
    """Several purchase lines from one supplier on one date."""

    supplier: str = Field(..., min_length=1)
    date: dt.date
    type: PurchaseTypeValue
    items: List[PurchaseLine] = Field(..., min_length=1)


class ReceiptAttach(DocumentSchema):
    receipt: str = Field(..., min_length=1)
