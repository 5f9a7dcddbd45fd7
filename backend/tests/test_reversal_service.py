"""
Reversal workflow tests.

Verifies:
- Restoring stock returns every line's quantity to the product
- Deleting without restore leaves stock as sold
- A second delete of the same transaction is NotFound
- Lines for vanished products are skipped, the delete still succeeds
"""

import pytest
from sqlalchemy import text

from shopledger.errors import NotFoundError
from shopledger.extensions import db
from shopledger.models import Product, Transaction, TransactionLine
from shopledger.services import reversal_service, sales_service
from tests.conftest import cart_item, reload


# =============================================================================
# ROUND TRIP
# =============================================================================


class TestReverseTransaction:

    def test_restore_returns_stock(self, make_product):
        a = make_product("A", 5)
        txn = sales_service.complete_sale([cart_item(a, 3, 100)], operator="alice")
        assert reload(Product, a.id).quantity == 2

        result = reversal_service.reverse_transaction(txn.id, restore_stock=True)

        assert result.deleted
        assert result.restored == [
            {"product_id": a.id, "product_name": "A", "quantity": 3, "new_quantity": 5}
        ]
        assert result.skipped == []
        assert reload(Product, a.id).quantity == 5
        assert reload(Transaction, txn.id) is None

    def test_restore_sums_repeated_lines(self, make_product):
        tea = make_product("Tea", 10)
        cake = make_product("Cake", 3)
        txn = sales_service.complete_sale(
            [cart_item(tea, 2, 1), cart_item(cake, 3, 2), cart_item(tea, 4, 1)],
            operator="alice",
        )

        reversal_service.reverse_transaction(txn.id, restore_stock=True)

        assert reload(Product, tea.id).quantity == 10
        assert reload(Product, cake.id).quantity == 3

    def test_restore_adds_to_current_quantity(self, make_product):
        tea = make_product("Tea", 10)
        txn = sales_service.complete_sale([cart_item(tea, 4, 1)], operator="alice")

        product = reload(Product, tea.id)
        product.quantity = 20
        db.session.commit()

        reversal_service.reverse_transaction(txn.id, restore_stock=True)
        assert reload(Product, tea.id).quantity == 24

    def test_without_restore_stock_stays(self, make_product):
        a = make_product("A", 5)
        txn = sales_service.complete_sale([cart_item(a, 3, 100)], operator="alice")

        result = reversal_service.reverse_transaction(txn.id, restore_stock=False)

        assert result.deleted
        assert result.restored == []
        assert reload(Product, a.id).quantity == 2
        assert reload(Transaction, txn.id) is None

    def test_lines_are_removed_with_transaction(self, make_product):
        a = make_product("A", 5)
        txn = sales_service.complete_sale([cart_item(a, 1, 1)], operator="alice")

        reversal_service.reverse_transaction(txn.id, restore_stock=False)
        assert db.session.query(TransactionLine).count() == 0

    def test_second_delete_is_not_found(self, make_product):
        a = make_product("A", 5)
        txn = sales_service.complete_sale([cart_item(a, 3, 100)], operator="alice")
        reversal_service.reverse_transaction(txn.id, restore_stock=True)

        with pytest.raises(NotFoundError):
            reversal_service.reverse_transaction(txn.id, restore_stock=True)

        # no double restore
        assert reload(Product, a.id).quantity == 5

    def test_unknown_id_is_not_found(self):
        with pytest.raises(NotFoundError):
            reversal_service.reverse_transaction("missing", restore_stock=False)


# =============================================================================
# PARTIAL FAILURE
# =============================================================================


class TestSkippedLines:

    def test_missing_product_is_skipped(self, make_product):
        keep = make_product("Keep", 5)
        gone = make_product("Gone", 5)
        txn = sales_service.complete_sale(
            [cart_item(keep, 2, 1), cart_item(gone, 1, 1)], operator="alice"
        )

        db.session.delete(reload(Product, gone.id))
        db.session.commit()

        result = reversal_service.reverse_transaction(txn.id, restore_stock=True)

        assert result.deleted
        assert [r["product_id"] for r in result.restored] == [keep.id]
        assert result.skipped == [{
            "product_id": gone.id,
            "product_name": "Gone",
            "quantity": 1,
            "reason": "product not found",
        }]
        assert reload(Product, keep.id).quantity == 5
        assert reload(Transaction, txn.id) is None

    def test_failed_lookup_is_skipped(self, make_product, monkeypatch):
        a = make_product("A", 5)
        b = make_product("B", 5)
        txn = sales_service.complete_sale([cart_item(a, 2, 1), cart_item(b, 3, 1)], operator="alice")
        failing, healthy = sorted([a.id, b.id])

        real_lock = reversal_service.lock_for_update
        calls = []

        def _flaky_lock(query):
            calls.append(query)
            # first call loads the transaction, second is the first product restore
            if len(calls) == 2:
                # a statement that fails inside the database
                db.session.execute(text(
                    "INSERT INTO transaction_lines "
                    "(transaction_id, position, product_id, product_name, quantity, unit_price) "
                    "VALUES ('x', 1, 'p', 'n', 0, 1)"
                ))
            return real_lock(query)

        monkeypatch.setattr(reversal_service, "lock_for_update", _flaky_lock)
        result = reversal_service.reverse_transaction(txn.id, restore_stock=True)
        monkeypatch.undo()

        assert result.deleted
        assert [s["product_id"] for s in result.skipped] == [failing]
        assert result.skipped[0]["reason"] == "lookup failed"
        assert [r["product_id"] for r in result.restored] == [healthy]
        assert reload(Transaction, txn.id) is None

        expected = {a.id: 3, b.id: 2}
        assert reload(Product, failing).quantity == expected[failing]
        assert reload(Product, healthy).quantity == 5


# =============================================================================
# SCOPING
# =============================================================================


class TestOwnerScope:

    def test_other_operator_cannot_reverse(self, make_product):
        a = make_product("A", 5)
        txn = sales_service.complete_sale([cart_item(a, 1, 1)], operator="alice")

        with pytest.raises(NotFoundError):
            reversal_service.reverse_transaction(txn.id, restore_stock=True, owner="bob")

        assert reload(Transaction, txn.id) is not None
        assert reload(Product, a.id).quantity == 4
