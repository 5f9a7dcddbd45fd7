"""
Product ledger tests: intake merge policy, edits, lookups.
"""

import pytest

from shopledger.errors import NotFoundError
from shopledger.models import Product
from shopledger.services import products_service
from shopledger.validation import ConflictError, ValidationError
from tests.conftest import reload


# =============================================================================
# INTAKE
# =============================================================================


class TestIntake:

    def test_creates_with_defaults(self):
        product, created = products_service.intake_product(
            patch={"name": "Green Tea", "quantity": 12}, owner="alice"
        )

        assert created
        assert product.category == "other"
        assert product.low_stock_threshold == 10
        assert product.barcode is None
        assert product.created_by == "alice"

    def test_same_name_merges_quantity(self, make_product):
        tea = make_product("Green Tea", 5, category="beverage", barcode="111")

        product, created = products_service.intake_product(
            patch={"name": "  GREEN tea ", "quantity": 7}, owner="alice"
        )

        assert not created
        assert product.id == tea.id
        assert reload(Product, tea.id).quantity == 12

    def test_merge_keeps_values_not_provided(self, make_product):
        tea = make_product("Tea", 5, category="beverage", barcode="111", low_stock_threshold=3)

        products_service.intake_product(
            patch={"name": "Tea", "quantity": 1, "category": "", "barcode": None}, owner="alice"
        )

        merged = reload(Product, tea.id)
        assert merged.category == "beverage"
        assert merged.barcode == "111"
        assert merged.low_stock_threshold == 3

    def test_merge_replaces_values_provided(self, make_product):
        tea = make_product("Tea", 5, category="beverage", low_stock_threshold=3)

        products_service.intake_product(
            patch={"name": "Tea", "quantity": 1, "category": "food", "barcode": "222", "low_stock_threshold": 0},
            owner="alice",
        )

        merged = reload(Product, tea.id)
        assert merged.category == "food"
        assert merged.barcode == "222"
        assert merged.low_stock_threshold == 0

    def test_inner_whitespace_is_significant(self, make_product):
        tea = make_product("Green Tea", 5)

        product, created = products_service.intake_product(
            patch={"name": "Green  Tea", "quantity": 1}, owner="alice"
        )

        assert created
        assert product.id != tea.id

    def test_other_operator_gets_own_product(self, make_product):
        tea = make_product("Tea", 5, owner="alice")

        product, created = products_service.intake_product(
            patch={"name": "Tea", "quantity": 2}, owner="bob"
        )

        assert created
        assert product.id != tea.id
        assert reload(Product, tea.id).quantity == 5

    def test_barcode_taken_by_other_product(self, make_product):
        make_product("Tea", 5, barcode="111")

        with pytest.raises(ConflictError):
            products_service.intake_product(
                patch={"name": "Coffee", "quantity": 1, "barcode": "111"}, owner="alice"
            )

    def test_name_required(self):
        with pytest.raises(ValidationError):
            products_service.intake_product(patch={"quantity": 1}, owner="alice")


# =============================================================================
# UPDATE
# =============================================================================


class TestUpdate:

    def test_rename_updates_key(self, make_product):
        tea = make_product("Tea", 5)

        products_service.update_product(product_id=tea.id, patch={"name": "Black Tea"})

        updated = reload(Product, tea.id)
        assert updated.name == "Black Tea"
        assert updated.name_key == "black tea"

    def test_rename_to_existing_name_conflicts(self, make_product):
        tea = make_product("Tea", 5)
        make_product("Coffee", 5)

        with pytest.raises(ConflictError):
            products_service.update_product(product_id=tea.id, patch={"name": "coffee"})

    def test_case_change_of_own_name_allowed(self, make_product):
        tea = make_product("tea", 5)
        products_service.update_product(product_id=tea.id, patch={"name": "Tea"})
        assert reload(Product, tea.id).name == "Tea"

    def test_not_visible_to_other_owner(self, make_product):
        tea = make_product("Tea", 5)
        with pytest.raises(NotFoundError):
            products_service.update_product(product_id=tea.id, patch={"quantity": 1}, owner="bob")

    def test_set_quantity(self, make_product):
        tea = make_product("Tea", 5)
        products_service.set_quantity(tea.id, 0)
        assert reload(Product, tea.id).quantity == 0

    def test_set_quantity_rejects_negative(self, make_product):
        tea = make_product("Tea", 5)
        with pytest.raises(ValidationError):
            products_service.set_quantity(tea.id, -1)


# =============================================================================
# LOOKUPS
# =============================================================================


class TestLookups:

    def test_list_sorted_case_insensitive(self, make_product):
        make_product("banana", 1)
        make_product("Apple", 1)
        make_product("cherry", 1)
        make_product("Zucchini", 1, owner="bob")

        names = [p.name for p in products_service.list_products(owner="alice")]
        assert names == ["Apple", "banana", "cherry"]
        assert len(products_service.list_products()) == 4

    def test_barcode_lookup_is_global(self, make_product):
        tea = make_product("Tea", 5, owner="bob", barcode="4006381333931")
        assert products_service.get_product_by_barcode(" 4006381333931 ").id == tea.id
        assert products_service.get_product_by_barcode("") is None

    def test_low_stock_includes_threshold(self, make_product):
        make_product("At", 10)
        make_product("Below", 2)
        make_product("Above", 11)
        make_product("Zero threshold", 0, low_stock_threshold=0)

        names = {p.name for p in products_service.low_stock_products(owner="alice")}
        assert names == {"At", "Below", "Zero threshold"}
