"""Dashboard service - headline KPIs and the low-stock panel."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ims.services.filters import matches_month_year
from ims.services.purchase_service import PurchaseStatus
from ims.services.stock_rules import low_stock, rank_low_stock
from ims.store.collections import CONSUMABLES, FIXED_ASSETS, PURCHASES
from ims.store.document_store import DocumentStore

logger = logging.getLogger(__name__)


def asset_units(asset: Dict[str, Any]) -> int:
    """Units an asset record stands for. Records without counts count once."""
    units = (asset.get("qtyFunctioning") or 0) + (asset.get("qtyNotFunctioning") or 0)
    return units or 1


class DashboardService:
    """Service for dashboard figures."""

    def __init__(self, db: Session, store: Optional[DocumentStore] = None):
        self.db = db
        self.store = store or DocumentStore(db)

    def summary(self, month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
        """KPIs, optionally narrowed to one month and/or year.

        Records without a date stay in every period.
        """
        assets = [
            a for a in self.store.get_all(FIXED_ASSETS)
            if matches_month_year(a.get("dateAcquired"), month, year, keep_undated=True)
        ]
        consumables = [
            c for c in self.store.get_all(CONSUMABLES, order_by="description")
            if matches_month_year(c.get("datePurchased"), month, year, keep_undated=True)
        ]
        purchases = [
            p for p in self.store.get_all(PURCHASES)
            if matches_month_year(p.get("date"), month, year, keep_undated=True)
        ]

        by_status = {
            PurchaseStatus.PENDING: 0,
            PurchaseStatus.RECEIVED: 0,
            PurchaseStatus.CANCELLED: 0,
        }
        for purchase in purchases:
            status = purchase.get("status")
            by_status[status] = by_status.get(status, 0) + 1

        summary = {
            "totalFixedAssets": sum(asset_units(a) for a in assets),
            "totalConsumables": sum(c.get("quantity") or 0 for c in consumables),
            "lowStockCount": len(low_stock(consumables)),
            "pendingOrders": by_status[PurchaseStatus.PENDING],
            "purchasesByStatus": by_status,
            "lowStockItems": rank_low_stock(consumables),
            "month": month,
            "year": year,
        }
        logger.debug(
            f"Dashboard summary month={month} year={year}: "
            f"{summary['lowStockCount']} low stock, {summary['pendingOrders']} pending"
        )
        return summary
