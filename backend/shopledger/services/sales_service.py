"""
Sales Service - cart validation and sale completion (Sale Workflow)

WHY: A sale either commits completely or not at all. The cart is checked
against live stock in one pass (quantities aggregated per product) before
a single product row is touched, then stock is decremented and the
transaction appended inside the same database transaction.

The shape check (parse_cart) and the stock check (check_stock) are pure so
they can be exercised without a database.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import InsufficientStockError, NotFoundError, ShopError, StorageError
from ..extensions import db
from ..models import Product, Transaction, TransactionLine
from ..validation import ValidationError, require_amount, require_int
from shopledger.time_utils import utcnow
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry


MAX_CART_LINES = 500


@dataclass(frozen=True)
class CartLine:
    product_id: str
    product_name: str
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class Shortage:
    product_id: str
    product_name: str
    requested: int
    available: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "requested": self.requested,
            "available": self.available,
        }


@dataclass(frozen=True)
class StockCheck:
    """Outcome of check_stock: products that do not exist, then shortfalls."""
    missing: list[CartLine] = field(default_factory=list)
    shortages: list[Shortage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.shortages


def parse_cart(items) -> list[CartLine]:
    """
    Validate cart shape and normalize it to CartLine objects.

    Rules: non-empty list; each item has a product_id string, a
    product_name string (may be blank), integer quantity >= 1 and
    price >= 0. Errors name the offending field, e.g. "items[2].quantity".
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Cart must contain at least one item", "items")
    if len(items) > MAX_CART_LINES:
        raise ValidationError(f"Cart cannot exceed {MAX_CART_LINES} items", "items")

    lines = []
    for i, item in enumerate(items):
        prefix = f"items[{i}]"
        if not isinstance(item, dict):
            raise ValidationError(f"{prefix} must be an object", prefix)

        product_id = item.get("product_id")
        if not isinstance(product_id, str) or not product_id.strip():
            raise ValidationError(f"{prefix}.product_id is required", f"{prefix}.product_id")

        product_name = item.get("product_name", "")
        if product_name is None:
            product_name = ""
        if not isinstance(product_name, str):
            raise ValidationError(f"{prefix}.product_name must be a string", f"{prefix}.product_name")

        if "quantity" not in item:
            raise ValidationError(f"{prefix}.quantity is required", f"{prefix}.quantity")
        quantity = require_int(item["quantity"], f"{prefix}.quantity", minimum=1)

        if "price" not in item:
            raise ValidationError(f"{prefix}.price is required", f"{prefix}.price")
        price = require_amount(item["price"], f"{prefix}.price")

        lines.append(CartLine(
            product_id=product_id.strip(),
            product_name=product_name.strip(),
            quantity=quantity,
            price=price,
        ))
    return lines


def normalize_customer_name(value) -> str | None:
    """Trimmed customer name; blank or missing is stored as None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("customer_name must be a string", "customer_name")
    value = value.strip()
    if len(value) > 255:
        raise ValidationError("customer_name exceeds max length 255", "customer_name")
    return value or None


def requested_quantities(lines: Iterable[CartLine]) -> dict[str, int]:
    """Total quantity asked for per product id, in first-seen order."""
    totals: dict[str, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def cart_total(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal("0.00"))


def check_stock(lines: list[CartLine], on_hand: Mapping[str, int]) -> StockCheck:
    """
    Compare the whole cart against a stock snapshot.

    on_hand maps product id -> current quantity; ids absent from it do not
    exist. Quantities for repeated products are summed before comparing,
    so two lines of 3 against a stock of 5 are a shortage.
    """
    first_line: dict[str, CartLine] = {}
    for line in lines:
        first_line.setdefault(line.product_id, line)

    missing = []
    shortages = []
    for product_id, requested in requested_quantities(lines).items():
        line = first_line[product_id]
        if product_id not in on_hand:
            missing.append(line)
            continue
        available = on_hand[product_id]
        if available < requested:
            shortages.append(Shortage(
                product_id=product_id,
                product_name=line.product_name or product_id,
                requested=requested,
                available=available,
            ))
    return StockCheck(missing=missing, shortages=shortages)


def _lock_products(product_ids: Iterable[str]) -> dict[str, Product]:
    # Ascending id order keeps concurrent sales from deadlocking
    query = (
        db.session.query(Product)
        .filter(Product.id.in_(sorted(set(product_ids))))
        .order_by(Product.id.asc())
    )
    return {p.id: p for p in lock_for_update(query).all()}


def complete_sale(items, *, operator: str, customer_name=None) -> Transaction:
    """
    Run the sale workflow for one cart.

    1. validate cart shape (ValidationError)
    2. lock every referenced product; any missing -> NotFoundError
    3. aggregate quantities per product and compare to live stock;
       any shortfall -> InsufficientStockError
    4. decrement each product once per cart line
    5./6. store the transaction with its computed total
    Steps 2-6 run in one DB transaction; a failure leaves nothing behind.

    Raises:
        ValidationError, NotFoundError, InsufficientStockError, StorageError
    """
    lines = parse_cart(items)
    customer = normalize_customer_name(customer_name)

    def _op():
        begin_write_transaction()
        products = _lock_products(requested_quantities(lines).keys())

        check = check_stock(lines, {pid: p.quantity for pid, p in products.items()})
        if check.missing:
            line = check.missing[0]
            label = line.product_name or line.product_id
            raise NotFoundError(
                f"Product not found: {label}",
                details={"product_id": line.product_id, "product_name": line.product_name},
            )
        if check.shortages:
            first = check.shortages[0]
            err = InsufficientStockError(
                first.product_id, first.product_name, first.requested, first.available
            )
            err.details["shortages"] = [s.to_dict() for s in check.shortages]
            raise err

        txn = Transaction(
            total_amount=cart_total(lines),
            created_at=utcnow(),
            created_by=operator,
            customer_name=customer,
        )
        for position, line in enumerate(lines, start=1):
            product = products[line.product_id]
            product.quantity = product.quantity - line.quantity
            txn.lines.append(TransactionLine(
                position=position,
                product_id=line.product_id,
                product_name=line.product_name or product.name,
                quantity=line.quantity,
                unit_price=line.price,
            ))

        db.session.add(txn)
        db.session.commit()
        return txn

    try:
        txn = run_with_retry(_op)
    except ShopError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Sale failed for operator %s", operator)
        raise StorageError("Could not record the sale") from exc

    current_app.logger.info(
        "Sale %s completed by %s: %d line(s), total %s",
        txn.id, operator, len(lines), txn.total_amount,
    )
    return txn


def list_transactions(owner: str | None = None) -> list[Transaction]:
    """History newest first; owner=None returns every operator's sales."""
    query = db.session.query(Transaction)
    if owner is not None:
        query = query.filter(Transaction.created_by == owner)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.asc()).all()


def get_transaction(transaction_id: str, owner: str | None = None) -> Transaction | None:
    query = db.session.query(Transaction).filter(Transaction.id == transaction_id)
    if owner is not None:
        query = query.filter(Transaction.created_by == owner)
    return query.first()
