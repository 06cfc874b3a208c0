"""Stock rules shared by inventory, issuance, receiving and the dashboard.

A consumable's ``inventoryValue`` and ``status`` are derived from
``quantity``, ``unitPrice`` and ``reorderLevel``. Every code path that
changes one of those goes through ``with_quantity()`` or ``recompute()`` so
the derived fields never drift.

Two low-stock predicates exist on purpose:
- ``is_low_stock_strict`` (quantity < reorderLevel) drives the reorder
  worklist and the dashboard KPI.
- ``is_low_stock_inclusive`` (quantity <= reorderLevel) matches the
  "Low Stock" badge and the inventory "needs reorder" filter.
"""

import math
import re
from enum import Enum
from typing import Any, Dict, Iterable, List, Union

Number = Union[int, float]

DEFAULT_REORDER_FRACTION = 0.2

_DIGITS = re.compile(r"\d+")


class StockStatus(str, Enum):
    """Per-row stock badge."""

    OUT_OF_STOCK = "Out of Stock"
    LOW_STOCK = "Low Stock"
    IN_STOCK = "In Stock"


class StockLevel(str, Enum):
    """Dashboard severity band."""

    CRITICAL = "critical"
    LOW = "low"
    ADEQUATE = "adequate"
    GOOD = "good"


def compute_status(quantity: Number, reorder_level: Number) -> StockStatus:
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= reorder_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def inventory_value(unit_price: Number, quantity: Number) -> Number:
    return unit_price * quantity


def recompute(consumable: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy with inventoryValue and status derived from the other fields."""
    updated = dict(consumable)
    quantity = updated.get("quantity") or 0
    updated["inventoryValue"] = inventory_value(updated.get("unitPrice") or 0, quantity)
    updated["status"] = compute_status(quantity, updated.get("reorderLevel") or 0).value
    return updated


def with_quantity(consumable: Dict[str, Any], quantity: Number) -> Dict[str, Any]:
    return recompute({**consumable, "quantity": quantity})


def apply_quantity_delta(consumable: Dict[str, Any], delta: Number) -> Dict[str, Any]:
    """Shift quantity by a signed delta and recompute the derived fields."""
    return with_quantity(consumable, (consumable.get("quantity") or 0) + delta)


def derived_fields(consumable: Dict[str, Any]) -> Dict[str, Any]:
    """Just the fields a quantity change rewrites, for partial updates."""
    updated = recompute(consumable)
    return {
        "quantity": updated.get("quantity") or 0,
        "inventoryValue": updated["inventoryValue"],
        "status": updated["status"],
    }


# ===== LOW STOCK =====

def is_low_stock_strict(consumable: Dict[str, Any]) -> bool:
    if consumable.get("discontinued"):
        return False
    return (consumable.get("quantity") or 0) < (consumable.get("reorderLevel") or 0)


def is_low_stock_inclusive(consumable: Dict[str, Any]) -> bool:
    if consumable.get("discontinued"):
        return False
    return (consumable.get("quantity") or 0) <= (consumable.get("reorderLevel") or 0)


def low_stock(consumables: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reorder candidates, in the order given."""
    return [c for c in consumables if is_low_stock_strict(c)]


def stock_percentage(quantity: Number, reorder_level: Number) -> float:
    if reorder_level > 0:
        return quantity / reorder_level * 100
    return 100.0


def stock_level(quantity: Number, reorder_level: Number) -> StockLevel:
    if reorder_level == 0:
        return StockLevel.GOOD
    if quantity == 0 or quantity < reorder_level * 0.5:
        return StockLevel.CRITICAL
    if quantity < reorder_level:
        return StockLevel.LOW
    if quantity < reorder_level * 1.5:
        return StockLevel.ADEQUATE
    return StockLevel.GOOD


def rank_low_stock(consumables: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Low-stock rows for display, most depleted first."""
    rows = []
    for c in low_stock(consumables):
        quantity = c.get("quantity") or 0
        threshold = c.get("reorderLevel") or 0
        rows.append({
            "id": c.get("id"),
            "name": c.get("name"),
            "category": c.get("description"),
            "currentStock": quantity,
            "threshold": threshold,
            "percentage": round(stock_percentage(quantity, threshold), 1),
            "level": stock_level(quantity, threshold).value,
        })
    rows.sort(key=lambda r: r["percentage"])
    return rows


# ===== RECEIVING =====

def parse_quantity(value: Any) -> Number:
    """Numeric part of a quantity that may be free text ("5 boxes" -> 5).

    Text without digits yields 0. Numbers are returned unchanged.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    match = _DIGITS.search(str(value or ""))
    return int(match.group(0)) if match else 0


def default_reorder_level(quantity: Number) -> int:
    return math.ceil(quantity * DEFAULT_REORDER_FRACTION)
