from __future__ import annotations

from ..extensions import db
from ..money import money_to_json
from shopledger.time_utils import to_utc_z
from ._ids import new_id


class Transaction(db.Model):
    """
    Completed sale.

    WHY: A transaction is a snapshot. total_amount is computed once by the
    sale workflow and stored; lines keep the product name as it was at sale
    time. Rows are never updated, only deleted by the reversal workflow.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_operator_created", "created_by", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, index=True)
    created_by = db.Column(db.String(80), nullable=False)
    customer_name = db.Column(db.String(255), nullable=True)

    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        order_by="TransactionLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} total={self.total_amount} by={self.created_by!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [line.to_dict() for line in self.lines],
            "total_amount": money_to_json(self.total_amount),
            "created_at": to_utc_z(self.created_at),
            "created_by": self.created_by,
            "customer_name": self.customer_name,
        }


class TransactionLine(db.Model):
    """
    Line item of a transaction.

    product_id is a soft reference (no foreign key): the product may be
    renamed or edited later without touching history.
    """
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "position", name="uq_transaction_lines_position"),
        db.CheckConstraint("quantity >= 1", name="ck_transaction_lines_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_transaction_lines_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.String(36),
        db.ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(14, 2), nullable=False)

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": money_to_json(self.unit_price),
            "line_total": money_to_json(self.line_total),
        }
