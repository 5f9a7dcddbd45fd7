# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product (warehouse) routes.

SCOPE: listing and low-stock follow SCOPE_TO_OPERATOR (see
services/scope_service.py). Barcode lookup is shop-wide because barcodes
are globally unique.

SECURITY: All routes require authentication.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import NotFoundError
from ..models import Product
from ..services import products_service
from ..services.scope_service import visible_owner
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from .errors import shop_error_response, validation_error_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "quantity", "category", "low_stock_threshold", "barcode"},
    required_on_create={"name", "quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    products = products_service.list_products(owner=visible_owner())
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    products = products_service.low_stock_products(owner=visible_owner())
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/barcode/<string:barcode>")
@require_auth
def product_by_barcode_route(barcode: str):
    product = products_service.get_product_by_barcode(barcode)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.get("/<string:product_id>")
@require_auth
def get_product_route(product_id: str):
    product = products_service.get_product(product_id, owner=visible_owner())
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.post("")
@require_auth
def intake_product_route():
    """
    Take stock into the warehouse.

    Creates the product (201) or merges the quantity into the operator's
    product with the same name (200).
    """
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        product, created = products_service.intake_product(patch=patch, owner=g.operator)
    except ValidationError as e:
        return validation_error_response(e)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to take product into stock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 201 if created else 200


@products_bp.patch("/<string:product_id>")
@require_auth
def update_product_route(product_id: str):
    """Partial update: name, quantity, category, low_stock_threshold, barcode."""
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        product = products_service.update_product(product_id=product_id, patch=patch, owner=visible_owner())
    except NotFoundError as e:
        return shop_error_response(e, 404)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 200
