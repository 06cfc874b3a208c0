"""Purchase receipt posting - turns a received purchase into inventory.

- consumable purchase linked to a consumable: add the received quantity to it
- consumable purchase with no link: open a new CON-NNN consumable for it
- fixed-asset purchase: register a new FA-NNN asset, all units functioning

The poster only writes inventory. Flipping the purchase to Received is the
caller's job and must happen in the same transaction, after ``receive()``
returns. The poster has no idempotence guard: posting the same purchase
twice adds its quantity twice.
"""

import logging
from typing import Any, Dict, Optional

from ims.services.inventory_service import InventoryService
from ims.services.stock_rules import parse_quantity
from ims.store.document_store import DocumentNotFoundError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class PurchaseType:
    CONSUMABLE = "consumable"
    FIXED_ASSET = "fixed-asset"


class ReceiptPostingError(Exception):
    """Raised when a purchase cannot be posted to inventory."""

    def __init__(self, purchase_id: Optional[str], reason: str):
        self.purchase_id = purchase_id
        self.reason = reason
        super().__init__(f"Cannot post purchase {purchase_id} to inventory: {reason}")


class PostingOutcome:
    """What a receipt changed in inventory."""

    CONSUMABLE_UPDATED = "consumable_updated"
    CONSUMABLE_CREATED = "consumable_created"
    FIXED_ASSET_CREATED = "fixed_asset_created"

    def __init__(self, action: str, record: Record, quantity: int):
        self.action = action
        self.record = record
        self.quantity = quantity

    @property
    def created_consumable_id(self) -> Optional[str]:
        if self.action == self.CONSUMABLE_CREATED:
            return self.record["id"]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "recordId": self.record.get("id"),
            "quantity": self.quantity,
            "record": self.record,
        }


class ReceiptPoster:
    """Posts received purchases into consumables and fixed assets."""

    def __init__(self, inventory: InventoryService):
        self.inventory = inventory

    def receive(self, purchase: Record) -> PostingOutcome:
        purchase_id = purchase.get("id")
        quantity = parse_quantity(purchase.get("quantity"))
        purchase_type = purchase.get("type")

        try:
            if purchase_type == PurchaseType.CONSUMABLE:
                outcome = self._post_consumable(purchase, quantity)
            elif purchase_type == PurchaseType.FIXED_ASSET:
                outcome = self._post_fixed_asset(purchase, quantity)
            else:
                raise ReceiptPostingError(purchase_id, f"unknown purchase type '{purchase_type}'")
        except DocumentNotFoundError as e:
            raise ReceiptPostingError(purchase_id, str(e)) from e

        logger.info(
            f"Purchase {purchase_id} posted: {outcome.action} "
            f"{outcome.record.get('id')} (+{quantity})"
        )
        return outcome

    def _post_consumable(self, purchase: Record, quantity: int) -> PostingOutcome:
        consumable_id = purchase.get("consumableId")
        if consumable_id:
            record = self.inventory.adjust_consumable_quantity(consumable_id, quantity)
            return PostingOutcome(PostingOutcome.CONSUMABLE_UPDATED, record, quantity)

        record = self.inventory.create_consumable_from_purchase(
            item_name=purchase.get("item", ""),
            category=purchase.get("category"),
            unit_price=purchase.get("unitPrice") or 0,
            quantity=quantity,
            date_purchased=purchase.get("date"),
        )
        return PostingOutcome(PostingOutcome.CONSUMABLE_CREATED, record, quantity)

    def _post_fixed_asset(self, purchase: Record, quantity: int) -> PostingOutcome:
        record = self.inventory.create_fixed_asset_from_purchase(
            item_name=purchase.get("item", ""),
            serial_number=purchase.get("serialNumber"),
            asset_class=purchase.get("assetClass"),
            acquisition_cost=purchase.get("cost") or 0,
            quantity=quantity,
            date_acquired=purchase.get("date"),
        )
        return PostingOutcome(PostingOutcome.FIXED_ASSET_CREATED, record, quantity)
