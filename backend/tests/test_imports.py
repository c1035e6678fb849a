"""
Test order import adapters
- POST /api/orders/import-csv
- POST /api/webhooks/shopify/orders/create
- POST /api/orders/import
"""
import base64
import hashlib
import hmac
import json

import routers.webhooks
from services.csv_import import map_csv_row
from services.shopify_service import transform_shopify_order

CSV_HEADER = "Name,Email,Billing Name,Phone,Billing Address1,Lineitem name,Lineitem quantity,Lineitem price,Lineitem sku,Lineitem properties Color,Lineitem properties Size,Notes,Total\n"


def upload(client, headers, text):
    return client.post(
        "/api/orders/import-csv",
        files={"file": ("orders.csv", text.encode("utf-8"), "text/csv")},
        headers=headers
    )


def webhook_order(**overrides):
    order = {
        "id": 820982911946154508,
        "order_number": 1042,
        "source_name": "web",
        "email": "jon@example.com",
        "customer": {"first_name": "Jon", "last_name": "Snow", "email": "jon@example.com"},
        "billing_address": {"address1": "Wall St 1"},
        "total_price": "45.00",
        "line_items": [{
            "id": 466157049,
            "title": "Custom Tee",
            "quantity": 2,
            "price": "22.50",
            "sku": "TEE-BLK-L",
            "properties": [
                {"name": "Color", "value": "Black"},
                {"name": "Size", "value": "L"},
                {"name": "Printing Techniques", "value": "DTG Printing"},
                {"name": "Font Location", "value": "Left Chest"},
                {"name": "More locations", "value": "Left Sleeve, Back Location, Collar"},
                {"name": "Link Design, Mockup", "value": "https://cdn.example.com/design.png"},
                {"name": "Printing file", "value": "No printing file"},
            ]
        }]
    }
    order.update(overrides)
    return order


class TestCsvRowMapping:
    """Column mapping for a single export row"""

    def test_full_row(self):
        order = map_csv_row({
            "Name": "#1001", "Email": "a@example.com", "Billing Name": "Ana", "Phone": "555",
            "Billing Address1": "Calle 1", "Lineitem name": "Cap", "Lineitem quantity": "3",
            "Lineitem price": "9.99", "Lineitem sku": "CAP", "Lineitem properties Color": "Red",
            "Lineitem properties Size": "M", "Notes": "Front, Left Sleeve", "Total": "29.97"
        })
        assert order.order_number == "#1001"
        assert order.customer.name == "Ana"
        assert order.synced is False
        product = order.products[0]
        assert (product.quantity, product.price, product.color, product.size) == (3, 9.99, "Red", "M")
        assert [p.name for p in product.embroidery_positions] == ["Front", "Left Sleeve"]

    def test_defaults(self):
        order = map_csv_row({"Name": "#1", "Email": "a@example.com", "Lineitem name": "Cap"})
        assert order.products[0].quantity == 1
        assert order.products[0].price == 0
        assert order.products[0].embroidery_positions == []

    def test_missing_name_or_email(self):
        assert map_csv_row({"Name": "", "Email": "a@example.com"}) is None
        assert map_csv_row({"Name": "#1", "Email": "  "}) is None


class TestCsvImport:
    """One order per valid row"""

    def test_rows_are_not_merged(self, client, admin_headers, stage_catalog):
        text = CSV_HEADER + (
            "#1001,a@example.com,Ana,555,Calle 1,Cap,2,10,CAP,Red,M,Front,20\n"
            "#1001,a@example.com,Ana,555,Calle 1,Tee,1,15,TEE,Blue,L,,15\n"
            "#1002,b@example.com,Bo,,,Bag,1,8,BAG,,,,8\n"
        )
        response = upload(client, admin_headers, text)
        assert response.status_code == 200
        result = response.json()
        assert (result["total_rows"], result["created"], result["skipped"]) == (3, 3, 0)

        orders = client.get("/api/orders", headers=admin_headers).json()["orders"]
        assert len(orders) == 3
        assert sorted(o["order_number"] for o in orders) == ["#1001", "#1001", "#1002"]
        assert all(len(o["products"]) == 1 for o in orders)
        assert all(o["source"] == "csv" and o["synced"] is False for o in orders)
        assert all(len(o["stages"]) == 3 for o in orders)

    def test_rows_without_name_or_email_create_nothing(self, client, admin_headers, stage_catalog):
        text = CSV_HEADER + (
            ",a@example.com,Ana,,,Cap,1,10,CAP,,,,10\n"
            "#2001,,Bo,,,Cap,1,10,CAP,,,,10\n"
        )
        result = upload(client, admin_headers, text).json()
        assert result["created"] == 0
        assert result["skipped"] == 2
        assert client.get("/api/orders", headers=admin_headers).json()["orders"] == []

    def test_bom_is_ignored(self, client, admin_headers, stage_catalog):
        text = "\ufeff" + CSV_HEADER + "#3001,c@example.com,Cy,,,Cap,1,10,CAP,,,,10\n"
        assert upload(client, admin_headers, text).json()["created"] == 1

    def test_worker_cannot_import(self, client, worker_headers):
        assert upload(client, worker_headers, CSV_HEADER).status_code == 403


class TestWebhookMapping:
    """Vendor payload to order"""

    def test_property_bags(self):
        order = transform_shopify_order(webhook_order())
        assert order.order_number == "1042"
        assert order.sales_channel == "web"
        assert order.customer.name == "Jon Snow"
        assert order.synced is True

        product = order.products[0]
        assert (product.color, product.size, product.quantity, product.price) == ("Black", "L", 2, 22.5)
        details = product.printing_details
        assert details.technique.value == "DTG_PRINTING"
        assert details.main_location == "LEFT_CHEST"
        assert details.additional_locations == ["LEFT_SLEEVE", "BACK_LOCATION"]
        assert details.design_url == "https://cdn.example.com/design.png"
        assert details.has_printing_file is False

    def test_defaults_without_properties(self):
        order = transform_shopify_order(webhook_order(line_items=[{"title": "Tee", "quantity": 1, "price": "5"}]))
        details = order.products[0].printing_details
        assert details.technique.value == "DTF_PRINTING"
        assert details.main_location == "CENTERED"
        assert details.has_printing_file is True


class TestWebhookEndpoint:
    """Inbound Shopify orders/create"""

    def test_creates_then_reports_duplicate(self, client, admin_headers, stage_catalog):
        body = json.dumps(webhook_order())
        first = client.post("/api/webhooks/shopify/orders/create", content=body)
        assert first.status_code == 200
        assert first.json()["status"] == "created"

        second = client.post("/api/webhooks/shopify/orders/create", content=body)
        assert second.json() == {"status": "already_exists", "order_id": first.json()["order_id"]}

        order = client.get(f"/api/orders/{first.json()['order_id']}", headers=admin_headers).json()
        assert order["source"] == "webhook"
        assert order["external_id"] == "820982911946154508"
        assert [s["stage_id"] for s in order["stages"]] == ["cutting", "sewing", "packing"]

    def test_invalid_json(self, client, stage_catalog):
        response = client.post("/api/webhooks/shopify/orders/create", content=b"{not json")
        assert response.status_code == 400

    def test_signature(self, client, stage_catalog, monkeypatch):
        monkeypatch.setattr(routers.webhooks, "SHOPIFY_WEBHOOK_SECRET", "hush")
        body = json.dumps(webhook_order()).encode()

        bad = client.post(
            "/api/webhooks/shopify/orders/create",
            content=body,
            headers={"X-Shopify-Hmac-Sha256": "bm9wZQ=="}
        )
        assert bad.status_code == 401

        missing = client.post("/api/webhooks/shopify/orders/create", content=body)
        assert missing.status_code == 401

        signature = base64.b64encode(hmac.new(b"hush", body, hashlib.sha256).digest()).decode()
        good = client.post(
            "/api/webhooks/shopify/orders/create",
            content=body,
            headers={"X-Shopify-Hmac-Sha256": signature}
        )
        assert good.status_code == 200

    def test_mixed_offsets_sort_newest_first(self, client, admin_headers, stage_catalog):
        """created_at from Shopify is stored in UTC so listings sort by real time"""
        earlier = webhook_order(id=1, order_number=1, created_at="2025-01-01T12:00:00Z")
        later = webhook_order(id=2, order_number=2, created_at="2025-01-01T10:00:00-05:00")
        for payload in (earlier, later):
            assert client.post("/api/webhooks/shopify/orders/create", content=json.dumps(payload)).status_code == 200

        orders = client.get("/api/orders", headers=admin_headers).json()["orders"]
        assert [o["order_number"] for o in orders] == ["2", "1"]
        assert orders[0]["created_at"].startswith("2025-01-01T15:00:00")
        assert orders[0]["created_at"].endswith("Z")


class TestImportForm:
    """Marketplace orders typed in by hand"""

    def form(self, **overrides):
        data = {
            "product_type": "DTF_PRINTING",
            "order_number": "ETSY-77",
            "customer": "Lena",
            "sales_channel": "etsy",
            "products": [{
                "name": "Tote", "sku": "TOTE", "price": 18, "color": "Natural", "size": "One",
                "quantity": 2, "main_location": "CENTERED", "additional_locations": ["BACK_LOCATION"],
                "has_production_file": True
            }]
        }
        data.update(overrides)
        return data

    def test_printing_import(self, client, admin_headers, stage_catalog):
        response = client.post("/api/orders/import", json=self.form(), headers=admin_headers)
        assert response.status_code == 200
        order = response.json()
        assert order["source"] == "import_form"
        assert order["customer"]["name"] == "Lena"
        details = order["products"][0]["printing_details"]
        assert details["technique"] == "DTF_PRINTING"
        assert details["has_printing_file"] is True
        assert order["total"] == 36

        duplicate = client.post("/api/orders/import", json=self.form(), headers=admin_headers)
        assert duplicate.status_code == 400

    def test_embroidery_import(self, client, admin_headers, stage_catalog):
        response = client.post(
            "/api/orders/import",
            json=self.form(product_type="EMBROIDERY", order_number="ETSY-78"),
            headers=admin_headers
        )
        product = response.json()["products"][0]
        assert product["printing_details"] is None
        assert [p["name"] for p in product["embroidery_positions"]] == ["CENTERED", "BACK_LOCATION"]

    def test_unknown_product_type(self, client, admin_headers):
        response = client.post("/api/orders/import", json=self.form(product_type="SCREEN"), headers=admin_headers)
        assert response.status_code == 422
