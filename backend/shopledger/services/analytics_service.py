# Overview: Service-layer operations for analytics; read-only folds over products and transactions.

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from ..categories import DEFAULT_CATEGORY, category_label
from ..extensions import db
from ..models import Product, Transaction
from ..money import money_to_json
from shopledger.time_utils import utc_date_key


TOP_PRODUCTS_LIMIT = 10
SALES_BY_DAY_LIMIT = 30

ZERO = Decimal("0.00")


def _summary(transactions: list, products: list) -> dict:
    return {
        "total_revenue": money_to_json(sum((Decimal(t.total_amount) for t in transactions), ZERO)),
        "total_transactions": len(transactions),
        "total_products": len(products),
        "low_stock_count": sum(1 for p in products if p.quantity <= p.low_stock_threshold),
    }


def _top_products(transactions: list, limit: int) -> list[dict]:
    # dicts keep first-encountered order; sorted() is stable, so ties keep it too
    totals: dict[str, dict] = {}
    for t in transactions:
        for line in t.lines:
            row = totals.setdefault(
                line.product_id,
                {"product_id": line.product_id, "name": line.product_name, "quantity": 0, "revenue": ZERO},
            )
            row["quantity"] += line.quantity
            row["revenue"] += Decimal(line.unit_price) * line.quantity

    ranked = sorted(totals.values(), key=lambda r: r["revenue"], reverse=True)[:limit]
    return [{**r, "revenue": money_to_json(r["revenue"])} for r in ranked]


def _sales_by_day(transactions: list, limit: int) -> list[dict]:
    daily: dict[str, Decimal] = {}
    for t in transactions:
        day = utc_date_key(t.created_at)
        daily[day] = daily.get(day, ZERO) + Decimal(t.total_amount)

    days = sorted(daily)[-limit:]
    return [{"date": day, "amount": money_to_json(daily[day])} for day in days]


def _sales_by_category(transactions: list, products: list) -> list[dict]:
    category_of = {p.id: p.category for p in products}
    totals: dict[str, Decimal] = {}
    for t in transactions:
        for line in t.lines:
            category = category_of.get(line.product_id) or DEFAULT_CATEGORY
            totals[category] = totals.get(category, ZERO) + Decimal(line.unit_price) * line.quantity

    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [
        {"category": key, "label": category_label(key), "amount": money_to_json(amount)}
        for key, amount in ranked
    ]


def fold_analytics(
    transactions: Iterable,
    products: Iterable,
    *,
    top_limit: int = TOP_PRODUCTS_LIMIT,
    day_limit: int = SALES_BY_DAY_LIMIT,
) -> dict:
    """
    Derive dashboard statistics from already-loaded rows.

    Pure: reads attributes only (Transaction: total_amount, created_at,
    lines[product_id, product_name, quantity, unit_price]; Product: id,
    category, quantity, low_stock_threshold). Same input order gives the
    same output.
    """
    transactions = list(transactions)
    products = list(products)
    return {
        "summary": _summary(transactions, products),
        "top_products": _top_products(transactions, top_limit),
        "sales_by_day": _sales_by_day(transactions, day_limit),
        "sales_by_category": _sales_by_category(transactions, products),
    }


def build_analytics(owner: str | None = None) -> dict:
    """
    Load the ledgers and fold them. owner=None covers the whole shop.

    Transactions are folded newest first (the history order), which is
    the order ties in top_products and sales_by_category resolve to.
    """
    tq = db.session.query(Transaction)
    pq = db.session.query(Product)
    if owner is not None:
        tq = tq.filter(Transaction.created_by == owner)
        pq = pq.filter(Product.created_by == owner)

    transactions = tq.order_by(Transaction.created_at.desc(), Transaction.id.asc()).all()
    products = pq.order_by(Product.id.asc()).all()
    return fold_analytics(transactions, products)
