"""
Product API tests: intake, edits, lookups and operator scoping.
"""

from shopledger.models import Product
from tests.conftest import reload


class TestIntakeRoute:

    def test_create_then_merge(self, client, headers):
        first = client.post("/api/products", json={"name": "Tea", "quantity": 5, "category": "beverage"}, headers=headers)
        assert first.status_code == 201
        product = first.get_json()
        assert product["created_by"] == "alice"
        assert product["low_stock_threshold"] == 10

        second = client.post("/api/products", json={"name": "TEA", "quantity": 3}, headers=headers)
        assert second.status_code == 200
        merged = second.get_json()
        assert merged["id"] == product["id"]
        assert merged["quantity"] == 8
        assert merged["category"] == "beverage"

    def test_missing_quantity(self, client, headers):
        resp = client.post("/api/products", json={"name": "Tea"}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "quantity"

    def test_negative_quantity(self, client, headers):
        resp = client.post("/api/products", json={"name": "Tea", "quantity": -1}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "quantity"

    def test_unknown_category(self, client, headers):
        resp = client.post("/api/products", json={"name": "Tea", "quantity": 1, "category": "weapons"}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "category"

    def test_owner_is_not_writable(self, client, headers):
        resp = client.post("/api/products", json={"name": "Tea", "quantity": 1, "created_by": "bob"}, headers=headers)
        assert resp.status_code == 400

    def test_duplicate_barcode(self, client, headers, make_product):
        make_product("Coffee", 1, barcode="111")
        resp = client.post("/api/products", json={"name": "Tea", "quantity": 1, "barcode": "111"}, headers=headers)
        assert resp.status_code == 409


class TestUpdateRoute:

    def test_patch_fields(self, client, headers, make_product):
        tea = make_product("Tea", 5)
        resp = client.patch(
            f"/api/products/{tea.id}",
            json={"quantity": 9, "low_stock_threshold": 2, "barcode": ""},
            headers=headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["quantity"] == 9
        assert body["low_stock_threshold"] == 2
        assert body["barcode"] is None

    def test_rename_conflict(self, client, headers, make_product):
        tea = make_product("Tea", 5)
        make_product("Coffee", 5)
        resp = client.patch(f"/api/products/{tea.id}", json={"name": "Coffee"}, headers=headers)
        assert resp.status_code == 409

    def test_other_operators_product_not_found(self, client, other_headers, make_product):
        tea = make_product("Tea", 5, owner="alice")
        resp = client.patch(f"/api/products/{tea.id}", json={"quantity": 0}, headers=other_headers)
        assert resp.status_code == 404
        assert reload(Product, tea.id).quantity == 5


class TestReadRoutes:

    def test_list_is_scoped(self, client, headers, other_headers, make_product):
        make_product("Tea", 5, owner="alice")
        make_product("Rice", 5, owner="bob")

        alice = client.get("/api/products", headers=headers).get_json()
        bob = client.get("/api/products", headers=other_headers).get_json()

        assert [p["name"] for p in alice["items"]] == ["Tea"]
        assert [p["name"] for p in bob["items"]] == ["Rice"]

    def test_list_shop_wide_when_unscoped(self, app, client, headers, make_product):
        make_product("Tea", 5, owner="alice")
        make_product("Rice", 5, owner="bob")

        app.config["SCOPE_TO_OPERATOR"] = False
        try:
            body = client.get("/api/products", headers=headers).get_json()
        finally:
            app.config["SCOPE_TO_OPERATOR"] = True

        assert body["count"] == 2

    def test_low_stock(self, client, headers, make_product):
        make_product("Low", 3)
        make_product("Plenty", 30)
        body = client.get("/api/products/low-stock", headers=headers).get_json()
        assert [p["name"] for p in body["items"]] == ["Low"]
        assert body["items"][0]["is_low_stock"] is True

    def test_low_stock_is_scoped(self, client, other_headers, make_product):
        make_product("Low", 1, owner="alice")
        body = client.get("/api/products/low-stock", headers=other_headers).get_json()
        assert body["count"] == 0

    def test_barcode_lookup_crosses_operators(self, client, other_headers, make_product):
        tea = make_product("Tea", 5, owner="alice", barcode="4006381333931")
        resp = client.get("/api/products/barcode/4006381333931", headers=other_headers)
        assert resp.status_code == 200
        assert resp.get_json()["id"] == tea.id

    def test_barcode_unknown(self, client, headers):
        assert client.get("/api/products/barcode/000", headers=headers).status_code == 404

    def test_get_by_id(self, client, headers, make_product):
        tea = make_product("Tea", 5)
        resp = client.get(f"/api/products/{tea.id}", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Tea"
