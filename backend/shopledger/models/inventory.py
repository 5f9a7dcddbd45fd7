from __future__ import annotations

from ..extensions import db
from ..categories import DEFAULT_CATEGORY
from shopledger.time_utils import to_utc_z
from ._ids import new_id


DEFAULT_LOW_STOCK_THRESHOLD = 10


def normalize_name(name: str) -> str:
    """Key used for per-owner name uniqueness (case-insensitive, surrounding whitespace ignored)."""
    return name.strip().lower()


class Product(db.Model):
    """
    Product master data with its current on-hand quantity.

    OWNERSHIP: created_by is the username that first took the product into
    stock. Names are unique per owner on name_key; barcodes are unique
    across the whole shop.

    Quantity is a mutable column (not ledger-derived). It only changes
    through stock intake, direct edit, the sale workflow and the reversal
    workflow. A CHECK constraint keeps it from going negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("created_by", "name_key", name="uq_products_owner_name"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_nonnegative"),
        db.CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_nonnegative"),
        db.Index("ix_products_owner_name", "created_by", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(255), nullable=False)
    name_key = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(32), nullable=False, default=DEFAULT_CATEGORY)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=DEFAULT_LOW_STOCK_THRESHOLD)
    barcode = db.Column(db.String(128), nullable=True, unique=True)
    created_by = db.Column(db.String(80), nullable=False, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.name is not None and self.name_key is None:
            self.name_key = normalize_name(self.name)

    def rename(self, name: str) -> None:
        self.name = name
        self.name_key = normalize_name(name)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "category": self.category,
            "low_stock_threshold": self.low_stock_threshold,
            "barcode": self.barcode,
            "created_by": self.created_by,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
