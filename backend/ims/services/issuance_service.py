"""Issuance ledger - consumable stock drawn by crew and departments.

Flow:
1. Issue: load the consumable, check it can cover the request, subtract the
   quantity, then write the consumable and a new ISSUE-NNN record in one
   transaction.
2. Delete: add the issued quantity back to the consumable first, then delete
   the record, in one transaction. If the reversal fails the record stays.
3. Multi-item issue: every line is written in one transaction. Siblings are
   independent records that share the same ``multiItemIds`` list.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ims.core.config import settings
from ims.services.filters import in_date_range, matches_search
from ims.services.inventory_service import InventoryService
from ims.services.stock_rules import apply_quantity_delta
from ims.store.collections import CONSUMABLE_ISSUES, CONSUMABLES
from ims.store.document_store import DocumentStore
from ims.store.sequences import ISSUANCE_PREFIX

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

EDITABLE_ISSUE_FIELDS = ("issuedTo", "department", "dateIssued", "quantityIssued")


class InsufficientStockError(Exception):
    """Raised when an issuance asks for more than is on hand."""

    def __init__(self, consumable_id: str, name: str, available: int, requested: int):
        self.consumable_id = consumable_id
        self.name = name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for '{name}' ({consumable_id}): "
            f"requested {requested}, available {available}"
        )


class DiscontinuedItemError(Exception):
    """Raised when issuing from a discontinued consumable."""

    def __init__(self, consumable_id: str, name: str):
        self.consumable_id = consumable_id
        self.name = name
        super().__init__(f"'{name}' ({consumable_id}) is discontinued")


class MultiItemEditError(Exception):
    """Raised when editing one line of a multi-item issuance."""

    def __init__(self, issue_id: str):
        self.issue_id = issue_id
        super().__init__(f"Issuance {issue_id} is part of a multi-item issue and cannot be edited")


def issue(consumable: Record, quantity_issued: int) -> Record:
    """Consumable after drawing ``quantity_issued`` units."""
    return apply_quantity_delta(consumable, -quantity_issued)


def unissue(consumable: Record, quantity_issued: int) -> Record:
    """Consumable after returning ``quantity_issued`` units."""
    return apply_quantity_delta(consumable, quantity_issued)


class IssuanceService:
    """Service for the consumable issuance ledger."""

    def __init__(
        self,
        db: Session,
        store: Optional[DocumentStore] = None,
        allow_negative: Optional[bool] = None,
    ):
        self.db = db
        self.store = store or DocumentStore(db)
        self.inventory = InventoryService(db, store=self.store)
        self.sequences = self.inventory.sequences
        self.allow_negative = settings.allow_negative_stock if allow_negative is None else allow_negative

    # ===== QUERIES =====

    def list_issued_items(
        self,
        department: Optional[str] = None,
        consumable_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
    ) -> List[Record]:
        return [
            i for i in self.store.get_all(CONSUMABLE_ISSUES, order_by="dateIssued", descending=True)
            if (not department or i.get("department") == department)
            and (not consumable_id or i.get("consumableId") == consumable_id)
            and in_date_range(i.get("dateIssued"), date_from, date_to)
            and matches_search(i, search, ("consumableName", "issuedTo", "department"))
        ]

    def get_issued_item(self, issue_id: str) -> Record:
        return self.store.require(CONSUMABLE_ISSUES, issue_id)

    def validate_consumable_quantity(self, consumable_id: str, requested: int) -> Dict[str, Any]:
        """Availability check used by issue forms before submitting."""
        consumable = self.store.get(CONSUMABLES, consumable_id)
        if consumable is None:
            return {"valid": False, "available": 0, "message": "Consumable not found"}

        available = consumable.get("quantity") or 0
        if consumable.get("discontinued"):
            return {"valid": False, "available": available, "message": "Item is discontinued"}
        if requested > available:
            return {
                "valid": False,
                "available": available,
                "message": f"Only {available} units available",
            }
        return {"valid": True, "available": available, "message": "OK"}

    # ===== ISSUE =====

    def _check_issuable(self, consumable: Record, quantity: int) -> None:
        if consumable.get("discontinued"):
            raise DiscontinuedItemError(consumable["id"], consumable.get("name", ""))
        available = consumable.get("quantity") or 0
        if quantity > available and not self.allow_negative:
            raise InsufficientStockError(consumable["id"], consumable.get("name", ""), available, quantity)

    def _draw(self, consumable_id: str, quantity: int) -> Record:
        consumable = self.store.require(CONSUMABLES, consumable_id)
        self._check_issuable(consumable, quantity)
        return self.inventory.save_quantity(issue(consumable, quantity))

    def issue_item(
        self,
        consumable_id: str,
        quantity_issued: int,
        issued_to: str,
        department: str,
        date_issued: str,
    ) -> Record:
        with self.store.transaction():
            consumable = self._draw(consumable_id, quantity_issued)
            issue_id = self.sequences.next_id(ISSUANCE_PREFIX, CONSUMABLE_ISSUES)
            record = self.store.set(CONSUMABLE_ISSUES, issue_id, {
                "consumableId": consumable_id,
                "consumableName": consumable.get("name", ""),
                "issuedTo": issued_to,
                "department": department,
                "dateIssued": date_issued,
                "quantityIssued": quantity_issued,
            })

        logger.info(
            f"Issued {quantity_issued} x {consumable_id} to {issued_to} ({department}) as {issue_id}; "
            f"remaining {consumable['quantity']}"
        )
        return record

    def issue_multiple(
        self,
        lines: List[Dict[str, Any]],
        issued_to: str,
        department: str,
        date_issued: str,
    ) -> List[Record]:
        """Issue several consumables to one person. All lines or none are written.

        Each line is a dict with ``consumableId`` and ``quantityIssued``.
        """
        records = []
        with self.store.transaction():
            issue_ids = self.sequences.next_ids(ISSUANCE_PREFIX, CONSUMABLE_ISSUES, len(lines))
            for issue_id, line in zip(issue_ids, lines):
                consumable = self._draw(line["consumableId"], line["quantityIssued"])
                records.append(self.store.set(CONSUMABLE_ISSUES, issue_id, {
                    "consumableId": line["consumableId"],
                    "consumableName": consumable.get("name", ""),
                    "issuedTo": issued_to,
                    "department": department,
                    "dateIssued": date_issued,
                    "quantityIssued": line["quantityIssued"],
                    "isMultiItem": True,
                    "multiItemIds": issue_ids,
                }))

        logger.info(f"Issued {len(records)} items to {issued_to} ({department}): {', '.join(issue_ids)}")
        return records

    def update_issued_item(self, issue_id: str, fields: Record) -> Record:
        """Edit a single-item issuance. A quantity change is applied to the consumable."""
        fields = {k: v for k, v in fields.items() if k in EDITABLE_ISSUE_FIELDS and v is not None}
        with self.store.transaction():
            current = self.store.require(CONSUMABLE_ISSUES, issue_id)
            if current.get("isMultiItem"):
                raise MultiItemEditError(issue_id)

            difference = fields.get("quantityIssued", current.get("quantityIssued", 0)) - (
                current.get("quantityIssued") or 0
            )
            if difference:
                consumable = self.store.get(CONSUMABLES, current.get("consumableId"))
                if consumable is not None:
                    if difference > 0:
                        self._check_issuable(consumable, difference)
                    self.inventory.save_quantity(issue(consumable, difference))

            record = self.store.update(CONSUMABLE_ISSUES, issue_id, fields)

        logger.info(f"Issuance {issue_id} updated (quantity change {difference:+})")
        return record

    # ===== REVERSAL =====

    def _reverse_and_delete(self, issue_id: str) -> Optional[Record]:
        issued = self.store.require(CONSUMABLE_ISSUES, issue_id)
        consumable = self.store.get(CONSUMABLES, issued.get("consumableId"))

        restored = None
        if consumable is None:
            logger.warning(
                f"Issuance {issue_id} references missing consumable "
                f"{issued.get('consumableId')}; deleting without reversal"
            )
        else:
            restored = self.inventory.save_quantity(unissue(consumable, issued.get("quantityIssued") or 0))

        self.store.delete(CONSUMABLE_ISSUES, issue_id)
        return restored

    def delete_issued_item(self, issue_id: str) -> Optional[Record]:
        """Return the stock to its consumable, then remove the record.

        Returns the restored consumable, or None when it no longer exists.
        """
        with self.store.transaction():
            restored = self._reverse_and_delete(issue_id)

        logger.info(f"Issuance {issue_id} deleted and reversed")
        return restored

    def delete_issued_items(self, issue_ids: Iterable[str]) -> int:
        issue_ids = list(issue_ids)
        with self.store.transaction():
            for issue_id in issue_ids:
                self._reverse_and_delete(issue_id)

        logger.info(f"Deleted and reversed {len(issue_ids)} issuances")
        return len(issue_ids)
