# Services module

from ims.services.dashboard_service import DashboardService
from ims.services.inventory_service import InventoryService
from ims.services.issuance_service import (
    DiscontinuedItemError,
    InsufficientStockError,
    IssuanceService,
    MultiItemEditError,
)
from ims.services.purchase_service import PurchaseService, PurchaseStateError, PurchaseStatus
from ims.services.receipt_poster import PostingOutcome, PurchaseType, ReceiptPoster, ReceiptPostingError
from ims.services.supplier_service import SupplierService

__all__ = [
    "DashboardService",
    "InventoryService",
    "IssuanceService",
    "InsufficientStockError",
    "DiscontinuedItemError",
    "MultiItemEditError",
    "PurchaseService",
    "PurchaseStateError",
    "PurchaseStatus",
    "ReceiptPoster",
    "ReceiptPostingError",
    "PostingOutcome",
    "PurchaseType",
    "SupplierService",
]
