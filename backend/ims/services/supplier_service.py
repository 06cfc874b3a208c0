"""Supplier service - suppliers, their variant catalogs and supplier-side orders.

Supplier orders follow a move-based lifecycle, separate from the main
purchase records:

1. A current purchase is created ``pending``.
2. It becomes ``ordered`` (``orderedAt`` stamped), singly or in bulk.
3. On receipt a purchase_history record is written and the current record is
   deleted, in one transaction. A still-pending purchase is marked ordered
   first.

Crew issuances (``issuedItems``) draw from the supplier inventory, which is
derived from purchase history and never stored.
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ims.services.filters import in_date_range, matches_search, parse_date
from ims.store.collections import (
    CURRENT_PURCHASES,
    PURCHASE_HISTORY,
    SUPPLIER_ISSUES,
    SUPPLIERS,
)
from ims.store.document_store import DocumentNotFoundError, DocumentStore, utc_now_iso

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

COMMERCIAL_FIELDS = ("supplierId", "supplierName", "item", "variant", "unitPrice", "quantity", "total")


class CurrentPurchaseStatus:
    PENDING = "pending"
    ORDERED = "ordered"


def generate_client_id() -> str:
    """Short random id for catalog items and variants."""
    return uuid.uuid4().hex[:12]


def normalize_catalog(items: List[Record]) -> List[Record]:
    """Give every catalog item and variant an id."""
    normalized = []
    for item in items or []:
        variants = [
            {**variant, "id": variant.get("id") or generate_client_id()}
            for variant in item.get("variants") or []
        ]
        normalized.append({**item, "id": item.get("id") or generate_client_id(), "variants": variants})
    return normalized


class SupplierService:
    """Service for suppliers, supplier orders and crew issuances."""

    def __init__(self, db: Session, store: Optional[DocumentStore] = None):
        self.db = db
        self.store = store or DocumentStore(db)

    # ===== SUPPLIERS =====

    def list_suppliers(self, search: Optional[str] = None) -> List[Record]:
        return [
            s for s in self.store.get_all(SUPPLIERS, order_by="createdAt", descending=True)
            if matches_search(s, search, ("name", "tin", "contactPerson", "email"))
        ]

    def get_supplier(self, supplier_id: str) -> Record:
        return self.store.require(SUPPLIERS, supplier_id)

    def create_supplier(self, data: Record) -> Record:
        data = {**data, "items": normalize_catalog(data.get("items") or [])}
        supplier_id = self.store.add(SUPPLIERS, data)
        logger.info(f"Supplier {supplier_id} created: {data.get('name')}")
        return self.store.require(SUPPLIERS, supplier_id)

    def update_supplier(self, supplier_id: str, fields: Record) -> Record:
        if "items" in fields:
            fields = {**fields, "items": normalize_catalog(fields["items"] or [])}
        record = self.store.update(SUPPLIERS, supplier_id, fields)
        logger.info(f"Supplier {supplier_id} updated")
        return record

    def delete_supplier(self, supplier_id: str) -> None:
        self.store.delete(SUPPLIERS, supplier_id)
        logger.info(f"Supplier {supplier_id} deleted")

    def update_supplier_item_variants(self, supplier_id: str, item_id: str, item: Record) -> Record:
        """Replace one catalog item (name and variants) of a supplier."""
        with self.store.transaction():
            supplier = self.store.require(SUPPLIERS, supplier_id)
            items = supplier.get("items") or []
            if not any(i.get("id") == item_id for i in items):
                raise DocumentNotFoundError(f"{SUPPLIERS}/{supplier_id}/items", item_id)

            replacement = normalize_catalog([{**item, "id": item_id}])[0]
            updated_items = [replacement if i.get("id") == item_id else i for i in items]
            record = self.store.update(SUPPLIERS, supplier_id, {"items": updated_items})

        logger.info(f"Supplier {supplier_id} item {item_id} now has {len(replacement['variants'])} variants")
        return record

    # ===== CURRENT PURCHASES =====

    def list_current_purchases(self, supplier_id: Optional[str] = None) -> List[Record]:
        return [
            p for p in self.store.get_all(CURRENT_PURCHASES, order_by="createdAt", descending=True)
            if not supplier_id or p.get("supplierId") == supplier_id
        ]

    def add_current_purchase(self, data: Record) -> Record:
        data = dict(data)
        if data.get("total") is None:
            data["total"] = (data.get("unitPrice") or 0) * (data.get("quantity") or 0)
        data["status"] = CurrentPurchaseStatus.PENDING

        purchase_id = self.store.add(CURRENT_PURCHASES, data)
        logger.info(
            f"Current purchase {purchase_id} added: {data.get('quantity')} x "
            f"{data.get('item')} ({data.get('variant')}) from {data.get('supplierName')}"
        )
        return self.store.require(CURRENT_PURCHASES, purchase_id)

    def mark_ordered(self, purchase_id: str) -> Record:
        record = self.store.update(CURRENT_PURCHASES, purchase_id, {
            "status": CurrentPurchaseStatus.ORDERED,
            "orderedAt": utc_now_iso(),
        })
        logger.info(f"Current purchase {purchase_id} ordered")
        return record

    def mark_multiple_ordered(self, purchase_ids: List[str]) -> List[Record]:
        with self.store.transaction():
            records = [self.mark_ordered(purchase_id) for purchase_id in purchase_ids]
        return records

    def receive_current_purchase(self, purchase_id: str) -> Record:
        """Move a current purchase into purchase history and return the history record."""
        with self.store.transaction():
            current = self.store.require(CURRENT_PURCHASES, purchase_id)
            if current.get("status") == CurrentPurchaseStatus.PENDING:
                current = self.mark_ordered(purchase_id)

            history = {field: current.get(field) for field in COMMERCIAL_FIELDS}
            history["orderedAt"] = current.get("orderedAt") or current.get("createdAt")
            history["receivedAt"] = utc_now_iso()

            history_id = self.store.add(PURCHASE_HISTORY, history)
            self.store.delete(CURRENT_PURCHASES, purchase_id)
            record = self.store.require(PURCHASE_HISTORY, history_id)

        logger.info(f"Current purchase {purchase_id} received into history as {history_id}")
        return record

    def delete_current_purchase(self, purchase_id: str) -> None:
        self.store.delete(CURRENT_PURCHASES, purchase_id)
        logger.info(f"Current purchase {purchase_id} deleted")

    # ===== HISTORY =====

    def list_purchase_history(self, supplier_id: Optional[str] = None) -> List[Record]:
        return [
            p for p in self.store.get_all(PURCHASE_HISTORY, order_by="receivedAt", descending=True)
            if not supplier_id or p.get("supplierId") == supplier_id
        ]

    # ===== CREW ISSUANCES =====

    def list_crew_issues(
        self,
        supplier_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
    ) -> List[Record]:
        return [
            i for i in self.store.get_all(SUPPLIER_ISSUES, order_by="issuedDate", descending=True)
            if (not supplier_id or i.get("supplierId") == supplier_id)
            and in_date_range(i.get("issuedDate"), date_from, date_to)
            and matches_search(i, search, ("itemName", "variant", "crewName"))
        ]

    def issue_to_crew(
        self,
        supplier_id: str,
        crew_name: str,
        issued_date: str,
        lines: List[Record],
    ) -> List[Record]:
        """Record supplier stock handed to a crew member, one record per line."""
        records = []
        with self.store.transaction():
            self.store.require(SUPPLIERS, supplier_id)
            for line in lines:
                issue_id = self.store.add(SUPPLIER_ISSUES, {
                    "supplierId": supplier_id,
                    "itemName": line["itemName"],
                    "variant": line["variant"],
                    "quantity": line["quantity"],
                    "crewName": crew_name,
                    "issuedDate": issued_date,
                })
                records.append(self.store.require(SUPPLIER_ISSUES, issue_id))

        logger.info(f"Issued {len(records)} supplier item(s) to {crew_name}")
        return records

    def update_crew_issue_quantity(self, issue_id: str, quantity: int) -> Record:
        return self.store.update(SUPPLIER_ISSUES, issue_id, {"quantity": quantity})

    def delete_crew_issue(self, issue_id: str) -> None:
        self.store.delete(SUPPLIER_ISSUES, issue_id)
        logger.info(f"Crew issuance {issue_id} deleted")

    # ===== DERIVED INVENTORY =====

    def supplier_inventory(self, supplier_id: Optional[str] = None) -> List[Record]:
        """Stock on hand per supplier item variant: received minus issued, never below 0."""
        rows: Dict[str, Record] = {}
        for purchase in self.store.get_all(PURCHASE_HISTORY):
            key = f"{purchase.get('supplierId')}-{purchase.get('item')}-{purchase.get('variant')}"
            if key not in rows:
                received = parse_date(purchase.get("receivedAt"))
                rows[key] = {
                    "id": key,
                    "supplierId": purchase.get("supplierId"),
                    "itemName": purchase.get("item"),
                    "variant": purchase.get("variant"),
                    "totalStock": 0,
                    "totalValue": 0,
                    "datePurchased": received.isoformat() if received else None,
                    "purchaseId": purchase["id"],
                }
            rows[key]["totalStock"] += purchase.get("quantity") or 0
            rows[key]["totalValue"] += purchase.get("total") or 0

        for issued in self.store.get_all(SUPPLIER_ISSUES):
            key = f"{issued.get('supplierId')}-{issued.get('itemName')}-{issued.get('variant')}"
            if key in rows:
                rows[key]["totalStock"] = max(0, rows[key]["totalStock"] - (issued.get("quantity") or 0))

        return [r for r in rows.values() if not supplier_id or r["supplierId"] == supplier_id]
