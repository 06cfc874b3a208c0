"""Purchasing service - purchase orders from creation to receipt.

Lifecycle: Pending -> Received (posts to inventory) or Pending -> Cancelled.
Deleting a purchase never touches inventory, whatever its status.

Receiving runs the receipt poster and the status flip in one transaction:
a purchase is never marked Received unless its inventory post succeeded,
and a failed post leaves it Pending.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ims.services.filters import matches_month_year, parse_date
from ims.services.inventory_service import InventoryService
from ims.services.receipt_poster import ReceiptPoster
from ims.services.stock_rules import low_stock, parse_quantity
from ims.store.collections import CONSUMABLES, PURCHASES
from ims.store.document_store import DocumentStore, StoreWriteError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class PurchaseStatus:
    PENDING = "Pending"
    RECEIVED = "Received"
    CANCELLED = "Cancelled"


class PurchaseStateError(Exception):
    """Raised when a purchase is not in a state that allows the action."""

    def __init__(self, purchase_id: str, status: str, action: str):
        self.purchase_id = purchase_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} purchase {purchase_id}: status is {status}")


class PurchaseService:
    """Service for purchase orders."""

    def __init__(self, db: Session, store: Optional[DocumentStore] = None):
        self.db = db
        self.store = store or DocumentStore(db)
        self.inventory = InventoryService(db, store=self.store)
        self.poster = ReceiptPoster(self.inventory)

    # ===== QUERIES =====

    def list_purchases(
        self,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[str] = None,
        purchase_type: Optional[str] = None,
    ) -> List[Record]:
        return [
            p for p in self.store.get_all(PURCHASES, order_by="createdAt", descending=True)
            if matches_month_year(p.get("date"), month, year)
            and (not status or p.get("status") == status)
            and (not purchase_type or p.get("type") == purchase_type)
        ]

    def available_years(self) -> List[int]:
        years = {
            parsed.year
            for parsed in (parse_date(p.get("date")) for p in self.store.get_all(PURCHASES))
            if parsed is not None
        }
        return sorted(years, reverse=True)

    def get_purchase(self, purchase_id: str) -> Record:
        return self.store.require(PURCHASES, purchase_id)

    def reorder_candidates(self) -> List[Record]:
        """Consumables below their reorder level, as purchasing worklist rows."""
        return [
            {
                "id": c["id"],
                "name": c.get("name"),
                "quantity": c.get("quantity") or 0,
                "reorderLevel": c.get("reorderLevel") or 0,
                "unitPrice": c.get("unitPrice") or 0,
                "category": c.get("description"),
            }
            for c in low_stock(self.store.get_all(CONSUMABLES))
        ]

    # ===== CREATE / EDIT =====

    def create_purchase(self, data: Record) -> Record:
        """Record a new Pending purchase. Cost defaults to quantity x unit price."""
        data = dict(data)
        if data.get("cost") is None:
            data["cost"] = parse_quantity(data.get("quantity")) * (data.get("unitPrice") or 0)
        data["status"] = PurchaseStatus.PENDING
        data.setdefault("receipt", None)

        purchase_id = self.store.add(PURCHASES, data)
        logger.info(f"Purchase {purchase_id} created: {data.get('item')} from {data.get('supplier')}")
        return self.store.require(PURCHASES, purchase_id)

    def create_multiple(
        self,
        supplier: str,
        date: str,
        items: List[Record],
        purchase_type: str,
    ) -> Dict[str, Any]:
        """Create one purchase per line for the same supplier and date.

        A line that fails to save is logged and skipped; the rest go ahead.
        """
        created_ids = []
        for item in items:
            quantity = parse_quantity(item.get("quantity"))
            unit_price = item.get("unitPrice") or 0
            try:
                record = self.create_purchase({
                    "item": item.get("itemName"),
                    "quantity": quantity,
                    "supplier": supplier,
                    "cost": quantity * unit_price,
                    "date": date,
                    "type": purchase_type,
                    "unitPrice": unit_price,
                    "category": item.get("category"),
                    "consumableId": item.get("consumableId"),
                    "serialNumber": item.get("serialNumber"),
                    "assetClass": item.get("assetClass"),
                })
            except StoreWriteError as e:
                logger.error(f"Failed to create purchase for item '{item.get('itemName')}': {e}")
                continue
            created_ids.append(record["id"])

        return {"success": bool(created_ids), "ids": created_ids}

    def update_purchase(self, purchase_id: str, fields: Record) -> Record:
        """Edit purchase details. Status only changes through receive/cancel."""
        fields = {k: v for k, v in fields.items() if k != "status"}
        record = self.store.update(PURCHASES, purchase_id, fields)
        logger.info(f"Purchase {purchase_id} updated")
        return record

    def delete_purchase(self, purchase_id: str) -> None:
        self.store.delete(PURCHASES, purchase_id)
        logger.info(f"Purchase {purchase_id} deleted")

    def attach_receipt(self, purchase_id: str, receipt_name: str) -> Record:
        return self.store.update(PURCHASES, purchase_id, {"receipt": receipt_name})

    # ===== STATUS TRANSITIONS =====

    def receive_purchase(self, purchase_id: str) -> Dict[str, Any]:
        """Post a Pending purchase to inventory and mark it Received."""
        with self.store.transaction():
            purchase = self.store.require(PURCHASES, purchase_id)
            status = purchase.get("status")
            if status != PurchaseStatus.PENDING:
                raise PurchaseStateError(purchase_id, status, "receive")

            outcome = self.poster.receive(purchase)

            updates = {"status": PurchaseStatus.RECEIVED}
            if outcome.created_consumable_id:
                updates["consumableId"] = outcome.created_consumable_id
            record = self.store.update(PURCHASES, purchase_id, updates)

        logger.info(f"Purchase {purchase_id} received ({outcome.action})")
        return {"purchase": record, "posting": outcome.to_dict()}

    def cancel_purchase(self, purchase_id: str) -> Record:
        with self.store.transaction():
            purchase = self.store.require(PURCHASES, purchase_id)
            status = purchase.get("status")
            if status != PurchaseStatus.PENDING:
                raise PurchaseStateError(purchase_id, status, "cancel")
            record = self.store.update(PURCHASES, purchase_id, {"status": PurchaseStatus.CANCELLED})

        logger.info(f"Purchase {purchase_id} cancelled")
        return record
