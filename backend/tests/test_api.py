"""API endpoint tests."""

import pytest
from starlette.websockets import WebSocketDisconnect

from ims.store.document_store import DocumentStore, StoreWriteError

API = "/api/v1"


@pytest.fixture
def consumable(client):
    response = client.post(f"{API}/consumables/", json={
        "name": "Mooring Rope",
        "description": "Deck",
        "unitPrice": 2,
        "quantity": 10,
        "reorderLevel": 4,
        "datePurchased": "2024-03-01",
    })
    assert response.status_code == 201
    return response.json()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "healthy"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestConsumablesApi:

    def test_create_assigns_id_and_derived_fields(self, consumable):
        assert consumable["id"] == "CON-001"
        assert consumable["inventoryValue"] == 20
        assert consumable["status"] == "In Stock"
        assert consumable["discontinued"] is False

    def test_snake_case_body_accepted(self, client):
        response = client.post(f"{API}/consumables/", json={
            "name": "Gloves", "description": "Safety", "unit_price": 1, "quantity": 3, "reorder_level": 4,
        })
        assert response.status_code == 201
        assert response.json()["reorderLevel"] == 4

    def test_missing_field_is_422(self, client):
        response = client.post(f"{API}/consumables/", json={"description": "Deck", "unitPrice": 1, "quantity": 1})
        assert response.status_code == 422

    def test_list_and_filters(self, client, consumable):
        client.post(f"{API}/consumables/", json={
            "name": "Gloves", "description": "Safety", "unitPrice": 1, "quantity": 4, "reorderLevel": 4,
        })

        body = client.get(f"{API}/consumables/").json()
        assert body["total"] == 2
        assert [c["description"] for c in body["items"]] == ["Deck", "Safety"]

        reorder = client.get(f"{API}/consumables/", params={"needs_reorder": True}).json()
        assert [c["name"] for c in reorder["items"]] == ["Gloves"]
        # At the reorder level is not strictly low
        assert client.get(f"{API}/consumables/low-stock").json()["total"] == 0

    def test_update_rederives_status(self, client, consumable):
        response = client.put(f"{API}/consumables/{consumable['id']}", json={"quantity": 0})
        assert response.status_code == 200
        assert response.json()["status"] == "Out of Stock"
        assert response.json()["inventoryValue"] == 0
        assert response.json()["name"] == "Mooring Rope"

    def test_update_with_null_keeps_stored_values(self, client, consumable):
        response = client.put(f"{API}/consumables/{consumable['id']}", json={
            "quantity": None, "name": None, "reorderLevel": 2,
        })
        assert response.status_code == 200
        body = response.json()
        assert body["quantity"] == 10
        assert body["name"] == "Mooring Rope"
        assert body["inventoryValue"] == 20
        assert body["status"] == "In Stock"
        assert body["reorderLevel"] == 2

    def test_date_filter_keeps_undated(self, client, consumable):
        client.post(f"{API}/consumables/", json={
            "name": "Gloves", "description": "Safety", "unitPrice": 1, "quantity": 3,
        })

        body = client.get(f"{API}/consumables/", params={"date_from": "2024-01-01"}).json()
        assert sorted(c["name"] for c in body["items"]) == ["Gloves", "Mooring Rope"]

        body = client.get(f"{API}/consumables/", params={"date_from": "2024-04-01"}).json()
        assert [c["name"] for c in body["items"]] == ["Gloves"]

    def test_not_found(self, client):
        response = client.get(f"{API}/consumables/CON-999")
        assert response.status_code == 404
        assert "CON-999" in response.json()["detail"]

        assert client.put(f"{API}/consumables/CON-999", json={"quantity": 1}).status_code == 404
        assert client.delete(f"{API}/consumables/CON-999").status_code == 404

    def test_delete(self, client, consumable):
        assert client.delete(f"{API}/consumables/{consumable['id']}").status_code == 204
        assert client.get(f"{API}/consumables/{consumable['id']}").status_code == 404

    def test_availability(self, client, consumable):
        response = client.get(f"{API}/consumables/{consumable['id']}/availability", params={"quantity": 12})
        assert response.json() == {"valid": False, "available": 10, "message": "Only 10 units available"}


class TestIssuedItemsApi:

    def _issue(self, client, consumable_id, quantity):
        return client.post(f"{API}/issued-items/", json={
            "consumableId": consumable_id,
            "quantityIssued": quantity,
            "issuedTo": "J. Okafor",
            "department": "Deck",
            "dateIssued": "2024-03-04",
        })

    def test_issue_and_reverse(self, client, consumable):
        response = self._issue(client, consumable["id"], 3)
        assert response.status_code == 201
        issue_id = response.json()["id"]
        assert client.get(f"{API}/consumables/{consumable['id']}").json()["quantity"] == 7

        response = client.delete(f"{API}/issued-items/{issue_id}")
        assert response.status_code == 200
        assert response.json()["consumable"]["quantity"] == 10

    def test_over_issue_is_400(self, client, consumable):
        response = self._issue(client, consumable["id"], 11)
        assert response.status_code == 400
        assert "Insufficient stock" in response.json()["detail"]

    def test_zero_quantity_is_422(self, client, consumable):
        assert self._issue(client, consumable["id"], 0).status_code == 422

    def test_update_with_null_quantity_changes_nothing(self, client, consumable):
        issue_id = self._issue(client, consumable["id"], 3).json()["id"]

        response = client.put(f"{API}/issued-items/{issue_id}", json={
            "quantityIssued": None, "issuedTo": "K. Tanaka",
        })
        assert response.status_code == 200
        assert response.json()["quantityIssued"] == 3
        assert response.json()["issuedTo"] == "K. Tanaka"
        assert client.get(f"{API}/consumables/{consumable['id']}").json()["quantity"] == 7

    def test_batch_issue_and_batch_delete(self, client, consumable):
        response = client.post(f"{API}/issued-items/batch", json={
            "issuedTo": "M. Silva",
            "department": "Deck",
            "dateIssued": "2024-03-05",
            "items": [
                {"consumableId": consumable["id"], "quantityIssued": 2},
                {"consumableId": consumable["id"], "quantityIssued": 3},
            ],
        })
        assert response.status_code == 201
        ids = [r["id"] for r in response.json()["items"]]
        assert client.get(f"{API}/consumables/{consumable['id']}").json()["quantity"] == 5

        response = client.put(f"{API}/issued-items/{ids[0]}", json={"quantityIssued": 1})
        assert response.status_code == 400

        response = client.post(f"{API}/issued-items/batch-delete", json={"ids": ids})
        assert response.json() == {"deleted": 2}
        assert client.get(f"{API}/consumables/{consumable['id']}").json()["quantity"] == 10


class TestPurchasesApi:

    def _create(self, client, **overrides):
        data = {
            "item": "Mooring Rope",
            "quantity": "5 coils",
            "supplier": "Harbour Chandlers",
            "unitPrice": 2,
            "date": "2024-03-05",
            "type": "consumable",
        }
        data.update(overrides)
        response = client.post(f"{API}/purchases/", json=data)
        assert response.status_code == 201
        return response.json()

    def test_receive_flow(self, client, consumable):
        purchase = self._create(client, consumableId=consumable["id"])
        assert purchase["status"] == "Pending"
        assert purchase["cost"] == 10

        response = client.post(f"{API}/purchases/{purchase['id']}/receive")
        assert response.status_code == 200
        assert response.json()["purchase"]["status"] == "Received"
        assert client.get(f"{API}/consumables/{consumable['id']}").json()["quantity"] == 15

        response = client.post(f"{API}/purchases/{purchase['id']}/receive")
        assert response.status_code == 400

    def test_receive_with_missing_consumable_is_409(self, client):
        purchase = self._create(client, consumableId="CON-404")
        response = client.post(f"{API}/purchases/{purchase['id']}/receive")
        assert response.status_code == 409
        assert client.get(f"{API}/purchases/{purchase['id']}").json()["status"] == "Pending"

    def test_cancel(self, client):
        purchase = self._create(client)
        assert client.post(f"{API}/purchases/{purchase['id']}/cancel").json()["status"] == "Cancelled"
        assert client.post(f"{API}/purchases/{purchase['id']}/cancel").status_code == 400

    def test_years_and_month_filter(self, client):
        self._create(client, date="2023-11-02")
        self._create(client, date="2024-03-05")

        assert client.get(f"{API}/purchases/years").json() == {"years": [2024, 2023]}
        body = client.get(f"{API}/purchases/", params={"month": 11, "year": 2023}).json()
        assert body["total"] == 1
        assert client.get(f"{API}/purchases/", params={"month": 13}).status_code == 422

    def test_batch(self, client):
        response = client.post(f"{API}/purchases/batch", json={
            "supplier": "Port Supply",
            "date": "2024-04-02",
            "type": "fixed-asset",
            "items": [
                {"itemName": "Radar", "quantity": 1, "unitPrice": 5000, "assetClass": "Navigation"},
                {"itemName": "Liferaft", "quantity": "2 units", "unitPrice": 3000},
            ],
        })
        assert response.status_code == 201
        assert len(response.json()["ids"]) == 2

    def test_receipt(self, client):
        purchase = self._create(client)
        response = client.put(f"{API}/purchases/{purchase['id']}/receipt", json={"receipt": "inv-0042.pdf"})
        assert response.json()["receipt"] == "inv-0042.pdf"

    def test_reorder_candidates(self, client):
        client.post(f"{API}/consumables/", json={
            "name": "Gloves", "description": "Safety", "unitPrice": 1, "quantity": 3, "reorderLevel": 4,
        })
        body = client.get(f"{API}/purchases/reorder-candidates").json()
        assert [r["name"] for r in body["items"]] == ["Gloves"]


class TestFixedAssetsApi:

    def test_crud(self, client):
        response = client.post(f"{API}/fixed-assets/", json={
            "name": "Liferaft", "assetClass": "Safety", "qtyFunctioning": 2, "dateAcquired": "2024-01-10",
        })
        assert response.status_code == 201
        asset = response.json()
        assert asset["id"] == "FA-001"
        assert asset["assetNumber"] == "FA-001"

        response = client.put(f"{API}/fixed-assets/FA-001", json={"status": "Maintenance", "assetNumber": "FA-999"})
        assert response.json()["status"] == "Maintenance"
        assert response.json()["assetNumber"] == "FA-001"

        body = client.get(f"{API}/fixed-assets/", params={"status": "Maintenance"}).json()
        assert body["total"] == 1

        assert client.delete(f"{API}/fixed-assets/FA-001").status_code == 204

    def test_invalid_status_is_422(self, client):
        response = client.post(f"{API}/fixed-assets/", json={"name": "Radar", "status": "Broken"})
        assert response.status_code == 422


class TestSuppliersApi:

    def _supplier(self, client):
        response = client.post(f"{API}/suppliers/", json={
            "name": "Harbour Chandlers",
            "email": "orders@harbour.example",
            "items": [{"name": "Coverall", "variants": [{"label": "M", "price": 25}]}],
        })
        assert response.status_code == 201
        return response.json()

    def test_invalid_email_is_422(self, client):
        response = client.post(f"{API}/suppliers/", json={"name": "Port Supply", "email": "not-an-email"})
        assert response.status_code == 422

    def test_item_variants(self, client):
        supplier = self._supplier(client)
        item_id = supplier["items"][0]["id"]
        response = client.put(f"{API}/suppliers/{supplier['id']}/items/{item_id}", json={
            "name": "Coverall", "variants": [{"label": "L", "price": 27}],
        })
        assert response.status_code == 200
        assert [v["label"] for v in response.json()["items"][0]["variants"]] == ["L"]

        response = client.put(f"{API}/suppliers/{supplier['id']}/items/missing", json={"name": "X"})
        assert response.status_code == 404

    def test_update_with_null_items_keeps_catalog(self, client):
        supplier = self._supplier(client)
        response = client.put(f"{API}/suppliers/{supplier['id']}", json={"items": None, "phone": "555-0100"})
        assert response.status_code == 200
        assert response.json()["items"] == supplier["items"]
        assert response.json()["phone"] == "555-0100"

    def test_order_receive_and_stock(self, client):
        supplier = self._supplier(client)
        response = client.post(f"{API}/supplier-orders/current", json={
            "supplierId": supplier["id"],
            "supplierName": supplier["name"],
            "item": "Coverall",
            "variant": "M",
            "unitPrice": 25,
            "quantity": 4,
        })
        assert response.status_code == 201
        order_id = response.json()["id"]

        assert client.post(f"{API}/supplier-orders/current/{order_id}/order").json()["status"] == "ordered"
        response = client.post(f"{API}/supplier-orders/current/{order_id}/receive")
        assert response.status_code == 200
        assert client.get(f"{API}/supplier-orders/current").json()["total"] == 0
        assert client.get(f"{API}/supplier-orders/history").json()["total"] == 1

        response = client.post(f"{API}/supplier-stock/issued", json={
            "supplierId": supplier["id"],
            "crewName": "A. Reyes",
            "issuedDate": "2024-05-02",
            "items": [{"itemName": "Coverall", "variant": "M", "quantity": 1}],
        })
        assert response.status_code == 201

        stock = client.get(f"{API}/supplier-stock/inventory").json()["items"]
        assert stock[0]["totalStock"] == 3

    def test_write_failure_is_500(self, client, monkeypatch):
        def failing_add(self, collection, data):
            raise StoreWriteError("set", collection, RuntimeError("disk full"))

        monkeypatch.setattr(DocumentStore, "add", failing_add)
        response = client.post(f"{API}/suppliers/", json={"name": "Port Supply"})
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to save changes"}


class TestDashboardApi:

    def test_summary(self, client, consumable):
        body = client.get(f"{API}/dashboard/summary").json()
        assert body["totalConsumables"] == 10
        assert body["lowStockCount"] == 0

    def test_bad_month_is_422(self, client):
        assert client.get(f"{API}/dashboard/summary", params={"month": 0}).status_code == 422


class TestCollectionSocket:

    def test_snapshot_on_connect_and_after_write(self, client):
        with client.websocket_connect("/ws/collections/consumables") as websocket:
            initial = websocket.receive_json()
            assert initial["event"] == "snapshot"
            assert initial["collection"] == "consumables"
            assert initial["data"] == []

            client.post(f"{API}/consumables/", json={
                "name": "Gloves", "description": "Safety", "unitPrice": 1, "quantity": 3,
            })

            update = websocket.receive_json()
            assert [c["id"] for c in update["data"]] == ["CON-001"]

    def test_snapshot_includes_existing_records(self, client, consumable):
        with client.websocket_connect("/ws/collections/consumables") as websocket:
            initial = websocket.receive_json()
            assert [c["id"] for c in initial["data"]] == [consumable["id"]]

    def test_ping(self, client):
        with client.websocket_connect("/ws/collections/suppliers") as websocket:
            websocket.receive_json()
            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

    def test_unknown_collection_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/collections/users") as websocket:
                websocket.receive_json()
