"""API routes."""

from fastapi import APIRouter

from ims.api.routes import (
    consumables, dashboard, fixed_assets, issued_items,
    purchases, supplier_orders, supplier_stock, suppliers,
)

api_router = APIRouter()

# Ship inventory
api_router.include_router(fixed_assets.router, prefix="/fixed-assets", tags=["fixed-assets"])
api_router.include_router(consumables.router, prefix="/consumables", tags=["consumables", "stock"])
api_router.include_router(issued_items.router, prefix="/issued-items", tags=["issuance", "stock"])

# Purchasing
api_router.include_router(purchases.router, prefix="/purchases", tags=["purchases"])

# Suppliers and supplier-side stock
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(supplier_orders.router, prefix="/supplier-orders", tags=["supplier-orders"])
api_router.include_router(supplier_stock.router, prefix="/supplier-stock", tags=["supplier-stock"])

api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
