# Overview: Decides whose rows a request may see.

"""
Access scoping

Reads are either limited to the authenticated operator's own rows or
shop-wide, controlled by configuration:
- SCOPE_TO_OPERATOR: product listing, low-stock list, transaction
  history, transaction export and deletion
- SCOPE_ANALYTICS_TO_OPERATOR: the analytics fold

Service functions take owner=None for shop-wide access.
"""

from flask import current_app, g


def visible_owner() -> str | None:
    if current_app.config.get("SCOPE_TO_OPERATOR", True):
        return g.operator
    return None


def analytics_owner() -> str | None:
    if current_app.config.get("SCOPE_ANALYTICS_TO_OPERATOR", False):
        return g.operator
    return None
