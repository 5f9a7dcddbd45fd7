# Overview: Flask API route listing the fixed product categories.

from flask import Blueprint, jsonify

from ..categories import list_categories
from ..decorators import require_auth

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    return jsonify(list_categories())
