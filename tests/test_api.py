"""Tests for the REST API."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from bizdocs.api.main import app, get_service
from bizdocs.services.documents import DocumentService
from bizdocs.storage.database import DocumentDatabase

EXAMPLE_LINES = [
    {"itemId": "widget", "qty": 2, "unitPrice": 100, "discountPercentage": 10, "taxPercentage": 5},
    {"itemId": "bolt", "qty": 1, "unitPrice": 50, "discountPercentage": 0, "taxPercentage": 5},
]


@pytest.fixture
def db(tmp_path):
    db = DocumentDatabase(tmp_path / "api.db")
    db.set_document("customers", "cust-1", {"applicantName": "Acme Ltd", "address": "Dhaka"})
    db.set_document("suppliers", "sup-1", {"beneficiaryName": "Smart Solution"})
    db.set_document("items", "widget", {"itemName": "Widget", "itemCode": "W-1", "salesPrice": 100,
                                        "manageStock": True, "currentQuantity": 10})
    db.set_document("items", "bolt", {"itemName": "Bolt", "salesPrice": 50,
                                      "manageStock": True, "currentQuantity": 1})
    return db


@pytest.fixture
def client(db):
    """Test client whose service uses the temporary database."""
    app.dependency_overrides[get_service] = lambda: DocumentService(db)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "BizDocs API"


class TestTotals:
    """Live recalculation endpoint."""

    def test_example_document(self, client):
        response = client.post("/api/totals", json={"lineItems": EXAMPLE_LINES})

        assert response.status_code == 200
        body = response.json()
        assert body["totals"]["subtotal"] == 250
        assert body["totals"]["total_discount_amount"] == 20
        assert body["totals"]["total_tax_amount"] == 11.5
        assert body["totals"]["grand_total"] == 241.5
        assert body["totals"]["line_totals"] == [200, 50]
        assert [line["total"] for line in body["line_items"]] == [200, 50]

    def test_hidden_columns_and_charges(self, client):
        response = client.post("/api/totals", json={
            "lineItems": EXAMPLE_LINES,
            "showDiscountColumn": False,
            "showTaxColumn": False,
            "extraCharges": {"freightCharges": "15", "otherCharges": ""},
        })

        totals = response.json()["totals"]
        assert totals["total_discount_amount"] == 0
        assert totals["total_tax_amount"] == 0
        assert totals["additional_charges"] == 15
        assert totals["grand_total"] == 265

    def test_garbage_input_counts_as_zero(self, client):
        response = client.post("/api/totals", json={"lineItems": [{"qty": "abc", "unitPrice": "10"}]})

        assert response.status_code == 200
        assert response.json()["totals"]["grand_total"] == 0


class TestDocuments:
    """Create, read and update endpoints."""

    def test_create_inventory_order(self, client):
        response = client.post("/api/inventory-orders", json={
            "beneficiaryId": "sup-1",
            "orderDate": "2025-02-01",
            "lineItems": EXAMPLE_LINES,
        })

        assert response.status_code == 201
        body = response.json()
        assert body["document_id"] == f"ORD{date.today().year}-001"
        assert body["collection"] == "inventory_orders"
        assert body["totals"]["grand_total"] == 241.5

        stored = client.get(f"/api/inventory-orders/{body['document_id']}").json()
        assert stored["beneficiaryName"] == "Smart Solution"
        assert stored["status"] == "Pending"

    def test_sale_with_insufficient_stock(self, client, db):
        response = client.post("/api/sales", json={
            "customerId": "cust-1",
            "invoiceDate": "2025-03-01",
            "lineItems": [{"itemId": "bolt", "qty": 2, "unitPrice": 50}],
        })

        assert response.status_code == 409
        assert response.json()["error"] == 'Insufficient stock for item "Bolt". Only 1 available.'
        assert db.list_collection("sales_invoice") == []

    def test_invalid_form(self, client):
        response = client.post("/api/quotes", json={
            "customerId": "cust-1",
            "quoteDate": "2025-01-15",
            "lineItems": [{"qty": 0, "unitPrice": 10}],
        })

        assert response.status_code == 422
        assert "lineItems.0.qty" in response.json()["detail"]

    def test_unknown_kind(self, client):
        assert client.post("/api/receipts", json={}).status_code == 404
        assert client.get("/api/receipts").status_code == 404

    def test_missing_document(self, client):
        response = client.get("/api/quotes/QT2025-99")
        assert response.status_code == 404
        assert "does not exist" in response.json()["error"]

    def test_update_sale(self, client, db):
        created = client.post("/api/sales", json={
            "customerId": "cust-1",
            "invoiceDate": "2025-03-01",
            "lineItems": [{"itemId": "widget", "qty": 2, "unitPrice": 100}],
        }).json()

        response = client.put(f"/api/sales/{created['document_id']}", json={
            "customerId": "cust-1",
            "invoiceDate": "2025-03-01",
            "lineItems": [{"itemId": "widget", "qty": 1, "unitPrice": 100}],
        })

        assert response.status_code == 200
        assert response.json()["totals"]["grand_total"] == 100
        assert db.get_document("items", "widget").get("currentQuantity") == 9

    def test_list_documents(self, client):
        for subject in ("First", "Second"):
            client.post("/api/quotes", json={
                "customerId": "cust-1", "quoteDate": "2025-01-15",
                "subject": subject, "lineItems": EXAMPLE_LINES,
            })

        documents = client.get("/api/quotes").json()

        assert len(documents) == 2
        assert {doc["subject"] for doc in documents} == {"First", "Second"}


class TestLookups:
    """Dropdown and counter endpoints."""

    def test_options(self, client):
        assert client.get("/api/options/customers").json() == [
            {"value": "cust-1", "label": "Acme Ltd", "address": "Dhaka"}
        ]
        assert client.get("/api/options/suppliers").json()[0]["label"] == "Smart Solution"
        items = client.get("/api/options/items").json()
        assert [item["label"] for item in items] == ["Bolt", "Widget (W-1)"]

    def test_counters(self, client, db):
        db.set_document("counters", "inventoryOrderNumberGenerator", {"yearlyCounts": {"2025": 7}})

        counters = client.get("/api/counters").json()

        by_name = {counter["sequence"]: counter for counter in counters}
        assert by_name["inventory_order"]["counterId"] == "inventoryOrderNumberGenerator"
        assert by_name["inventory_order"]["yearlyCounts"] == {"2025": 7}
        assert by_name["quote"]["yearlyCounts"] == {}
