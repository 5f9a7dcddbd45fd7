# Overview: Domain exceptions raised by the sale, reversal and product services.

from __future__ import annotations


class ShopError(Exception):
    """Base for workflow failures that carry a displayable message."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(ShopError):
    """Referenced product or transaction does not exist."""


class InsufficientStockError(ShopError):
    """A product lacks the quantity a cart asks for."""

    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}: available {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class StorageError(ShopError):
    """The database failed underneath a workflow."""
