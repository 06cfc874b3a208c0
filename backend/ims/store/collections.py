"""Collection names and their default read ordering."""

FIXED_ASSETS = "fixedAssets"
CONSUMABLES = "consumables"
CONSUMABLE_ISSUES = "consumablesIssuedItems"
PURCHASES = "purchases"
SUPPLIERS = "suppliers"
CURRENT_PURCHASES = "current_purchases"
PURCHASE_HISTORY = "purchase_history"
SUPPLIER_ISSUES = "issuedItems"

ALL_COLLECTIONS = (
    FIXED_ASSETS,
    CONSUMABLES,
    CONSUMABLE_ISSUES,
    PURCHASES,
    SUPPLIERS,
    CURRENT_PURCHASES,
    PURCHASE_HISTORY,
    SUPPLIER_ISSUES,
)

# (field, descending) used by list screens and live snapshots
DEFAULT_ORDERING = {
    FIXED_ASSETS: ("assetNumber", False),
    CONSUMABLES: ("description", False),
    CONSUMABLE_ISSUES: ("dateIssued", True),
    PURCHASES: ("createdAt", True),
    SUPPLIERS: ("createdAt", True),
    CURRENT_PURCHASES: ("createdAt", True),
    PURCHASE_HISTORY: ("receivedAt", True),
    SUPPLIER_ISSUES: ("issuedDate", True),
}
