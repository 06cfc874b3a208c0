"""Inventory service - fixed assets and consumable stock.

Consumables are keyed by CON-NNN tokens and always carry ``inventoryValue``
and ``status`` derived from their quantity (see stock_rules). Fixed assets
are keyed by FA-NNN tokens, mirrored into ``assetNumber``; their quantity
fields are plain counters with no derived state.
"""

import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ims.core.config import settings
from ims.services.filters import in_date_range, matches_search
from ims.services.stock_rules import (
    apply_quantity_delta,
    default_reorder_level,
    derived_fields,
    is_low_stock_inclusive,
    recompute,
)
from ims.store.collections import CONSUMABLES, FIXED_ASSETS
from ims.store.document_store import DocumentStore
from ims.store.sequences import (
    CONSUMABLE_PREFIX,
    FIXED_ASSET_PREFIX,
    SequenceAllocator,
    parse_sequence_number,
)

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

DERIVED_CONSUMABLE_FIELDS = ("inventoryValue", "status")


class AssetStatus:
    OPERATIONAL = "Operational"
    MAINTENANCE = "Maintenance"
    NON_OPERATIONAL = "Non-operational"


def _asset_sort_key(asset: Record):
    number = parse_sequence_number(FIXED_ASSET_PREFIX, asset.get("assetNumber") or asset.get("id"))
    return (number is None, number or 0, asset.get("id") or "")


class InventoryService:
    """Service for fixed assets and consumables."""

    def __init__(self, db: Session, store: Optional[DocumentStore] = None):
        self.db = db
        self.store = store or DocumentStore(db)
        self.sequences = SequenceAllocator(self.store)

    # ===== FIXED ASSETS =====

    def list_fixed_assets(
        self,
        asset_class: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
    ) -> List[Record]:
        assets = [
            a for a in self.store.get_all(FIXED_ASSETS)
            if (not asset_class or a.get("assetClass") == asset_class)
            and (not status or a.get("status") == status)
            and in_date_range(a.get("dateAcquired"), date_from, date_to)
            and matches_search(a, search, ("name", "serial", "assetNumber", "assetClass", "location"))
        ]
        assets.sort(key=_asset_sort_key)
        return assets

    def get_fixed_asset(self, asset_id: str) -> Record:
        return self.store.require(FIXED_ASSETS, asset_id)

    def create_fixed_asset(self, data: Record) -> Record:
        with self.store.transaction():
            asset_id = self.sequences.next_id(FIXED_ASSET_PREFIX, FIXED_ASSETS, ("id", "assetNumber"))
            record = self.store.set(FIXED_ASSETS, asset_id, {**data, "assetNumber": asset_id})

        logger.info(f"Fixed asset {asset_id} created: {record.get('name')}")
        return record

    def update_fixed_asset(self, asset_id: str, fields: Record) -> Record:
        fields = {k: v for k, v in fields.items() if k != "assetNumber"}
        record = self.store.update(FIXED_ASSETS, asset_id, fields)
        logger.info(f"Fixed asset {asset_id} updated")
        return record

    def delete_fixed_asset(self, asset_id: str) -> None:
        self.store.delete(FIXED_ASSETS, asset_id)
        logger.info(f"Fixed asset {asset_id} deleted")

    def create_fixed_asset_from_purchase(
        self,
        item_name: str,
        serial_number: Optional[str],
        asset_class: Optional[str],
        acquisition_cost: float,
        quantity: int,
        date_acquired: Optional[str],
    ) -> Record:
        """Register assets bought through a purchase order, all functioning."""
        return self.create_fixed_asset({
            "name": item_name,
            "serial": serial_number or f"SN-{int(time.time() * 1000)}",
            "category": asset_class or "General",
            "location": settings.default_asset_location,
            "status": AssetStatus.OPERATIONAL,
            "dateAcquired": date_acquired,
            "acquisitionCost": acquisition_cost,
            "assetClass": asset_class or "General",
            "qtyFunctioning": quantity,
            "qtyNotFunctioning": 0,
        })

    # ===== CONSUMABLES =====

    def list_consumables(
        self,
        category: Optional[str] = None,
        needs_reorder: bool = False,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        include_discontinued: bool = True,
    ) -> List[Record]:
        return [
            c for c in self.store.get_all(CONSUMABLES, order_by="description")
            if (not category or c.get("description") == category)
            and (not needs_reorder or is_low_stock_inclusive(c))
            and (include_discontinued or not c.get("discontinued"))
            and in_date_range(c.get("datePurchased"), date_from, date_to)
            and matches_search(c, search, ("id", "name", "description"))
        ]

    def get_consumable(self, consumable_id: str) -> Record:
        return self.store.require(CONSUMABLES, consumable_id)

    def create_consumable(self, data: Record) -> Record:
        data = {k: v for k, v in data.items() if k not in DERIVED_CONSUMABLE_FIELDS}
        with self.store.transaction():
            consumable_id = self.sequences.next_id(CONSUMABLE_PREFIX, CONSUMABLES)
            record = self.store.set(
                CONSUMABLES,
                consumable_id,
                recompute({"reorderTime": 0, "discontinued": False, **data}),
            )

        logger.info(
            f"Consumable {consumable_id} created: {record.get('name')} "
            f"qty={record.get('quantity')} status={record['status']}"
        )
        return record

    def update_consumable(self, consumable_id: str, fields: Record) -> Record:
        """Partial update; value and status are rederived from the merged record."""
        fields = {k: v for k, v in fields.items() if k not in DERIVED_CONSUMABLE_FIELDS and v is not None}
        with self.store.transaction():
            current = self.store.require(CONSUMABLES, consumable_id)
            merged = {**current, **fields}
            record = self.store.update(CONSUMABLES, consumable_id, {**fields, **derived_fields(merged)})

        logger.info(f"Consumable {consumable_id} updated: status={record['status']}")
        return record

    def delete_consumable(self, consumable_id: str) -> None:
        self.store.delete(CONSUMABLES, consumable_id)
        logger.info(f"Consumable {consumable_id} deleted")

    def save_quantity(self, consumable: Record) -> Record:
        """Persist a consumable whose quantity was changed in memory."""
        return self.store.update(CONSUMABLES, consumable["id"], derived_fields(consumable))

    def adjust_consumable_quantity(self, consumable_id: str, delta: int) -> Record:
        """Add a signed delta to a consumable's quantity."""
        with self.store.transaction():
            current = self.store.require(CONSUMABLES, consumable_id)
            record = self.save_quantity(apply_quantity_delta(current, delta))

        logger.info(
            f"Consumable {consumable_id} quantity {current.get('quantity')} -> "
            f"{record['quantity']} ({delta:+})"
        )
        return record

    def create_consumable_from_purchase(
        self,
        item_name: str,
        category: Optional[str],
        unit_price: float,
        quantity: int,
        date_purchased: Optional[str],
    ) -> Record:
        """Open a stock line for an item received without a catalogue match."""
        return self.create_consumable({
            "name": item_name,
            "description": category or "General",
            "unitPrice": unit_price,
            "quantity": quantity,
            "reorderLevel": default_reorder_level(quantity),
            "reorderTime": 0,
            "datePurchased": date_purchased,
            "discontinued": False,
        })
