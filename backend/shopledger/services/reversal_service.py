# Overview: Service-layer operations for transaction reversal (delete with optional stock restore).

"""
Reversal Service

WHY: Deleting a sale is a compensating action, not an undo. The
transaction row always goes; when restore_stock is set each line's
quantity is added back onto the product's *current* quantity.

PARTIAL FAILURE POLICY: a product that cannot be found or loaded is
logged and skipped. Removing the transaction record still succeeds.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..errors import NotFoundError, ShopError, StorageError
from ..extensions import db
from ..models import Product, Transaction
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry


@dataclass
class ReversalResult:
    transaction_id: str
    deleted: bool
    restore_stock: bool
    restored: list[dict] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "deleted": self.deleted,
            "restore_stock": self.restore_stock,
            "restored": self.restored,
            "skipped": self.skipped,
        }


def _quantities_by_product(txn: Transaction) -> dict[str, tuple[str, int]]:
    totals: dict[str, tuple[str, int]] = {}
    for line in txn.lines:
        name, qty = totals.get(line.product_id, (line.product_name, 0))
        totals[line.product_id] = (name, qty + line.quantity)
    return totals


def _restore_stock(txn: Transaction, result: ReversalResult) -> None:
    totals = _quantities_by_product(txn)
    # Ascending id order, same as the sale workflow's locks
    for product_id in sorted(totals):
        product_name, quantity = totals[product_id]
        # One SAVEPOINT per product; a failure discards only that item
        try:
            with db.session.begin_nested():
                product = lock_for_update(
                    db.session.query(Product).filter(Product.id == product_id)
                ).first()
                if product is not None:
                    product.quantity = product.quantity + quantity
        except OperationalError:
            # retried by run_with_retry
            raise
        except SQLAlchemyError:
            current_app.logger.warning(
                "Stock restore lookup failed for product %s (transaction %s)",
                product_id, txn.id, exc_info=True,
            )
            result.skipped.append({
                "product_id": product_id,
                "product_name": product_name,
                "quantity": quantity,
                "reason": "lookup failed",
            })
            continue

        if product is None:
            current_app.logger.warning(
                "Skipping stock restore for missing product %s (transaction %s)",
                product_id, txn.id,
            )
            result.skipped.append({
                "product_id": product_id,
                "product_name": product_name,
                "quantity": quantity,
                "reason": "product not found",
            })
            continue

        result.restored.append({
            "product_id": product_id,
            "product_name": product.name,
            "quantity": quantity,
            "new_quantity": product.quantity,
        })


def reverse_transaction(
    transaction_id: str,
    *,
    restore_stock: bool,
    owner: str | None = None,
) -> ReversalResult:
    """
    Delete a transaction, optionally replaying its quantities into stock.

    owner limits the lookup to that operator's transactions.

    Raises:
        NotFoundError: transaction missing (already reversed, or not visible)
        StorageError: the delete itself could not be committed
    """
    def _op():
        begin_write_transaction()
        query = db.session.query(Transaction).filter(Transaction.id == transaction_id)
        if owner is not None:
            query = query.filter(Transaction.created_by == owner)
        txn = lock_for_update(query).first()
        if not txn:
            raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})

        result = ReversalResult(transaction_id=txn.id, deleted=False, restore_stock=restore_stock)
        if restore_stock:
            _restore_stock(txn, result)

        db.session.delete(txn)
        db.session.commit()
        result.deleted = True
        return result

    try:
        result = run_with_retry(_op)
    except ShopError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Reversal of transaction %s failed", transaction_id)
        raise StorageError("Could not delete the transaction") from exc

    current_app.logger.info(
        "Transaction %s reversed (restore_stock=%s, restored=%d, skipped=%d)",
        transaction_id, restore_stock, len(result.restored), len(result.skipped),
    )
    return result
