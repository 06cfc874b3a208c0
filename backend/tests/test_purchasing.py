"""Tests for purchase orders and posting receipts to inventory."""

import pytest

from ims.services.purchase_service import PurchaseService, PurchaseStateError
from ims.services.receipt_poster import PostingOutcome, ReceiptPoster, ReceiptPostingError
from ims.store.collections import CONSUMABLES, FIXED_ASSETS


@pytest.fixture
def purchasing(db_session, store):
    return PurchaseService(db_session, store=store)


def _purchase(purchasing, **overrides):
    data = {
        "item": "Mooring Rope",
        "quantity": 5,
        "supplier": "Harbour Chandlers",
        "unitPrice": 2,
        "date": "2024-03-05",
        "type": "consumable",
    }
    data.update(overrides)
    return purchasing.create_purchase(data)


class TestCreatePurchase:

    def test_new_purchase_is_pending(self, purchasing):
        purchase = _purchase(purchasing)
        assert purchase["status"] == "Pending"
        assert purchase["receipt"] is None
        assert purchase["cost"] == 10

    def test_cost_uses_numeric_part_of_quantity(self, purchasing):
        purchase = _purchase(purchasing, quantity="4 crates", unitPrice=2.5)
        assert purchase["quantity"] == "4 crates"
        assert purchase["cost"] == 10

    def test_explicit_cost_kept(self, purchasing):
        assert _purchase(purchasing, cost=7.5)["cost"] == 7.5

    def test_status_cannot_be_edited(self, purchasing):
        purchase = _purchase(purchasing)
        updated = purchasing.update_purchase(purchase["id"], {"status": "Received", "supplier": "Port Supply"})
        assert updated["status"] == "Pending"
        assert updated["supplier"] == "Port Supply"

    def test_create_multiple(self, purchasing):
        result = purchasing.create_multiple(
            supplier="Port Supply",
            date="2024-04-02",
            items=[
                {"itemName": "Gloves", "quantity": "12 pairs", "unitPrice": 1.5, "category": "Safety"},
                {"itemName": "Paint", "quantity": 3, "unitPrice": 20},
            ],
            purchase_type="consumable",
        )

        assert result["success"] is True
        assert len(result["ids"]) == 2
        gloves, paint = (purchasing.get_purchase(i) for i in result["ids"])
        assert (gloves["quantity"], gloves["cost"], gloves["category"]) == (12, 18, "Safety")
        assert (paint["cost"], paint["supplier"], paint["date"]) == (60, "Port Supply", "2024-04-02")

    def test_attach_receipt(self, purchasing):
        purchase = _purchase(purchasing)
        assert purchasing.attach_receipt(purchase["id"], "invoice-0042.pdf")["receipt"] == "invoice-0042.pdf"


class TestReceiveConsumable:

    def test_receive_adds_to_linked_consumable(self, purchasing, inventory, rope):
        purchase = _purchase(purchasing, consumableId=rope["id"])

        result = purchasing.receive_purchase(purchase["id"])

        assert result["purchase"]["status"] == "Received"
        assert result["posting"]["action"] == PostingOutcome.CONSUMABLE_UPDATED
        consumable = inventory.get_consumable(rope["id"])
        assert consumable["quantity"] == 15
        assert consumable["inventoryValue"] == 30
        assert consumable["status"] == "In Stock"

    def test_poster_has_no_idempotence_guard(self, purchasing, inventory, rope):
        purchase = _purchase(purchasing, consumableId=rope["id"])
        poster = ReceiptPoster(inventory)

        poster.receive(purchase)
        poster.receive(purchase)

        assert inventory.get_consumable(rope["id"])["quantity"] == 20

    def test_received_purchase_cannot_be_received_again(self, purchasing, inventory, rope):
        purchase = _purchase(purchasing, consumableId=rope["id"])
        purchasing.receive_purchase(purchase["id"])

        with pytest.raises(PurchaseStateError):
            purchasing.receive_purchase(purchase["id"])
        assert inventory.get_consumable(rope["id"])["quantity"] == 15

    def test_unlinked_purchase_opens_new_consumable(self, purchasing, inventory, store, rope):
        purchase = _purchase(
            purchasing, item="Hydraulic Oil", quantity="5 drums", unitPrice=40, category="Engine",
        )

        result = purchasing.receive_purchase(purchase["id"])

        created = result["posting"]["record"]
        assert result["posting"]["action"] == PostingOutcome.CONSUMABLE_CREATED
        assert created["id"] == "CON-002"
        assert created["name"] == "Hydraulic Oil"
        assert created["description"] == "Engine"
        assert created["quantity"] == 5
        assert created["reorderLevel"] == 1
        assert created["inventoryValue"] == 200
        assert created["status"] == "In Stock"
        assert created["datePurchased"] == "2024-03-05"
        assert result["purchase"]["consumableId"] == "CON-002"
        assert len(store.get_all(CONSUMABLES)) == 2

    def test_unparseable_quantity_still_received(self, purchasing, inventory):
        purchase = _purchase(purchasing, quantity="some", category=None)

        result = purchasing.receive_purchase(purchase["id"])

        assert result["purchase"]["status"] == "Received"
        created = result["posting"]["record"]
        assert created["quantity"] == 0
        assert created["description"] == "General"
        assert created["status"] == "Out of Stock"

    def test_missing_consumable_leaves_purchase_pending(self, purchasing, store):
        purchase = _purchase(purchasing, consumableId="CON-404")

        with pytest.raises(ReceiptPostingError):
            purchasing.receive_purchase(purchase["id"])

        assert purchasing.get_purchase(purchase["id"])["status"] == "Pending"
        assert store.get_all(CONSUMABLES) == []


class TestReceiveFixedAsset:

    def test_receive_registers_asset(self, purchasing, store):
        purchase = _purchase(
            purchasing, item="Liferaft", type="fixed-asset", quantity="3 units", cost=9000,
        )

        result = purchasing.receive_purchase(purchase["id"])

        assert result["purchase"]["status"] == "Received"
        assets = store.get_all(FIXED_ASSETS)
        assert len(assets) == 1
        asset = assets[0]
        assert asset["id"] == "FA-001"
        assert asset["assetNumber"] == "FA-001"
        assert asset["name"] == "Liferaft"
        assert asset["qtyFunctioning"] == 3
        assert asset["qtyNotFunctioning"] == 0
        assert asset["status"] == "Operational"
        assert asset["acquisitionCost"] == 9000
        assert asset["assetClass"] == "General"
        assert asset["location"] == "Main Office"
        assert asset["serial"].startswith("SN-")
        assert "consumableId" not in result["purchase"]

    def test_serial_and_class_carried_over(self, purchasing, store):
        purchase = _purchase(
            purchasing, item="Radar", type="fixed-asset", quantity=1,
            serialNumber="RDR-7781", assetClass="Navigation",
        )
        purchasing.receive_purchase(purchase["id"])

        asset = store.get_all(FIXED_ASSETS)[0]
        assert asset["serial"] == "RDR-7781"
        assert asset["assetClass"] == "Navigation"
        assert asset["category"] == "Navigation"

    def test_unknown_type_rejected(self, purchasing):
        purchase = _purchase(purchasing, type="service")
        with pytest.raises(ReceiptPostingError):
            purchasing.receive_purchase(purchase["id"])
        assert purchasing.get_purchase(purchase["id"])["status"] == "Pending"


class TestCancel:

    def test_cancel_pending(self, purchasing):
        purchase = _purchase(purchasing)
        assert purchasing.cancel_purchase(purchase["id"])["status"] == "Cancelled"

    def test_cancelled_purchase_cannot_be_received(self, purchasing, inventory, rope):
        purchase = _purchase(purchasing, consumableId=rope["id"])
        purchasing.cancel_purchase(purchase["id"])

        with pytest.raises(PurchaseStateError) as exc:
            purchasing.receive_purchase(purchase["id"])
        assert exc.value.status == "Cancelled"
        assert inventory.get_consumable(rope["id"])["quantity"] == 10

    def test_delete_received_purchase_keeps_inventory(self, purchasing, inventory, rope):
        purchase = _purchase(purchasing, consumableId=rope["id"])
        purchasing.receive_purchase(purchase["id"])
        purchasing.delete_purchase(purchase["id"])

        assert purchasing.list_purchases() == []
        assert inventory.get_consumable(rope["id"])["quantity"] == 15


class TestPurchaseQueries:

    def test_month_and_year_filter(self, purchasing):
        _purchase(purchasing, item="A", date="2023-12-10")
        _purchase(purchasing, item="B", date="2024-03-05")
        _purchase(purchasing, item="C", date="2024-03-20")
        _purchase(purchasing, item="D", date="2024-04-01")

        assert {p["item"] for p in purchasing.list_purchases(month=3, year=2024)} == {"B", "C"}
        assert {p["item"] for p in purchasing.list_purchases(year=2024)} == {"B", "C", "D"}
        assert {p["item"] for p in purchasing.list_purchases(month=12)} == {"A"}
        assert len(purchasing.list_purchases()) == 4

    def test_available_years_newest_first(self, purchasing):
        _purchase(purchasing, date="2022-06-01")
        _purchase(purchasing, date="2024-03-05")
        _purchase(purchasing, date="2024-01-05")
        assert purchasing.available_years() == [2024, 2022]

    def test_status_and_type_filter(self, purchasing):
        first = _purchase(purchasing, item="A")
        _purchase(purchasing, item="B", type="fixed-asset")
        purchasing.cancel_purchase(first["id"])

        assert [p["item"] for p in purchasing.list_purchases(status="Cancelled")] == ["A"]
        assert [p["item"] for p in purchasing.list_purchases(purchase_type="fixed-asset")] == ["B"]

    def test_reorder_candidates_use_strict_comparison(self, purchasing, inventory):
        inventory.create_consumable({
            "name": "Gloves", "description": "Safety", "unitPrice": 1, "quantity": 3, "reorderLevel": 4,
        })
        inventory.create_consumable({
            "name": "Rags", "description": "Deck", "unitPrice": 1, "quantity": 4, "reorderLevel": 4,
        })

        rows = purchasing.reorder_candidates()
        assert rows == [{
            "id": "CON-001",
            "name": "Gloves",
            "quantity": 3,
            "reorderLevel": 4,
            "unitPrice": 1,
            "category": "Safety",
        }]
