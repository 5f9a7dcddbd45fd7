# backend/shopledger/services/products_service.py
"""
Products Service (Product Ledger)

OWNERSHIP: Products belong to the operator that first took them into
stock (Product.created_by). Reads accept an optional owner; None means
the shop-wide view.

- intake_product creates a product or merges quantity into the owner's
  existing product with the same normalized name
- update_product applies a validated partial patch (rename, requantify,
  category/threshold/barcode)
- quantities never go below zero; the DB CHECK constraint backs this up
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..categories import DEFAULT_CATEGORY
from ..errors import NotFoundError
from ..extensions import db
from ..models import Product
from ..models.inventory import DEFAULT_LOW_STOCK_THRESHOLD, normalize_name
from ..validation import ConflictError, ValidationError
from .concurrency import run_with_retry

PRODUCT_MUTABLE_FIELDS = {"name", "quantity", "category", "low_stock_threshold", "barcode"}


def _scoped(query, owner: str | None):
    if owner is not None:
        query = query.filter(Product.created_by == owner)
    return query


def list_products(owner: str | None = None) -> list[Product]:
    """Products sorted by name (case-insensitive), then id."""
    query = _scoped(db.session.query(Product), owner)
    return query.order_by(func.lower(Product.name).asc(), Product.id.asc()).all()


def get_product(product_id: str, owner: str | None = None) -> Product | None:
    query = _scoped(db.session.query(Product).filter(Product.id == product_id), owner)
    return query.first()


def find_product_by_name(name: str, owner: str | None = None) -> Product | None:
    """Lookup ignoring case and surrounding whitespace."""
    query = _scoped(db.session.query(Product).filter(Product.name_key == normalize_name(name)), owner)
    return query.order_by(Product.created_at.asc(), Product.id.asc()).first()


def get_product_by_barcode(barcode: str) -> Product | None:
    barcode = (barcode or "").strip()
    if not barcode:
        return None
    return db.session.query(Product).filter(Product.barcode == barcode).first()


def low_stock_products(owner: str | None = None) -> list[Product]:
    """Products whose quantity is at or below their threshold."""
    return [p for p in list_products(owner) if p.is_low_stock]


def _ensure_barcode_free(barcode: str | None, exclude_id: str | None = None) -> None:
    if not barcode:
        return
    query = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("Barcode already assigned to another product.")


def _ensure_name_free(owner: str, name: str, exclude_id: str | None = None) -> None:
    query = db.session.query(Product).filter(
        Product.created_by == owner,
        Product.name_key == normalize_name(name),
    )
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("A product with this name already exists.")


def intake_product(*, patch: dict, owner: str) -> tuple[Product, bool]:
    """
    Take stock into the warehouse.

    If the owner already has a product with the same normalized name, the
    quantity is added to it. category and barcode replace the existing
    values only when provided and non-empty; low_stock_threshold replaces
    only when provided (0 is a valid threshold).

    Returns (product, created).

    Raises:
        ValidationError: missing name/quantity
        ConflictError: barcode belongs to another product
    """
    name = patch.get("name")
    if not name:
        raise ValidationError("name is required", "name")
    quantity = patch.get("quantity")
    if quantity is None:
        raise ValidationError("quantity is required", "quantity")

    category = patch.get("category")
    threshold = patch.get("low_stock_threshold")
    barcode = patch.get("barcode")

    def _op():
        existing = find_product_by_name(name, owner)
        if existing:
            _ensure_barcode_free(barcode, exclude_id=existing.id)
            existing.quantity = existing.quantity + quantity
            existing.category = category or existing.category
            if threshold is not None:
                existing.low_stock_threshold = threshold
            existing.barcode = barcode or existing.barcode
            db.session.commit()
            current_app.logger.info(
                "Merged %s units into product %s (%s) for %s",
                quantity, existing.id, existing.name, owner,
            )
            return existing, False

        _ensure_barcode_free(barcode)
        product = Product(
            name=name,
            quantity=quantity,
            category=category or DEFAULT_CATEGORY,
            low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD if threshold is None else threshold,
            barcode=barcode or None,
            created_by=owner,
        )
        db.session.add(product)
        db.session.commit()
        current_app.logger.info("Created product %s (%s) for %s", product.id, product.name, owner)
        return product, True

    try:
        return run_with_retry(_op)
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product conflicts with an existing name or barcode.")


def update_product(*, product_id: str, patch: dict, owner: str | None = None) -> Product:
    """
    Apply a validated partial update.

    Raises:
        NotFoundError: product missing (or not visible to owner)
        ConflictError: new name or barcode already taken
    """
    def _op():
        p = get_product(product_id, owner)
        if not p:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        if "name" in patch and normalize_name(patch["name"]) != p.name_key:
            _ensure_name_free(p.created_by, patch["name"], exclude_id=p.id)
        if patch.get("barcode") and patch["barcode"] != p.barcode:
            _ensure_barcode_free(patch["barcode"], exclude_id=p.id)

        for k, v in patch.items():
            if k not in PRODUCT_MUTABLE_FIELDS:
                continue
            if k == "name":
                p.rename(v)
            else:
                setattr(p, k, v)

        db.session.commit()
        return p

    try:
        return run_with_retry(_op)
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product conflicts with an existing name or barcode.")


def set_quantity(product_id: str, quantity: int) -> Product:
    """Overwrite on-hand quantity (stock count correction)."""
    if quantity < 0:
        raise ValidationError("quantity must be >= 0", "quantity")
    return update_product(product_id=product_id, patch={"quantity": quantity})
