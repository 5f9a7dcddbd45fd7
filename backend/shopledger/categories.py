"""
Fixed product category enumeration.

Keys are stored on Product.category; labels are only used for display
(analytics, the /api/categories listing).
"""

from __future__ import annotations

DEFAULT_CATEGORY = "other"

PRODUCT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("food", "Food"),
    ("beverage", "Beverages"),
    ("electronics", "Electronics"),
    ("clothing", "Clothing"),
    ("household", "Household goods"),
    ("cosmetics", "Cosmetics"),
    ("medicine", "Medicine"),
    ("stationery", "Stationery"),
    ("other", "Other"),
)

CATEGORY_LABELS: dict[str, str] = dict(PRODUCT_CATEGORIES)


def is_valid_category(key: str) -> bool:
    return key in CATEGORY_LABELS


def category_label(key: str) -> str:
    """Display label for a key; unknown keys are shown as-is."""
    return CATEGORY_LABELS.get(key, key)


def list_categories() -> list[dict]:
    return [{"value": value, "label": label} for value, label in PRODUCT_CATEGORIES]
