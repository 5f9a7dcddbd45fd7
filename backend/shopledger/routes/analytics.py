# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Summary revenue/counts, top products, per-day and per-category sales.
Recomputed on every request.
"""

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth
from ..services import analytics_service
from ..services.scope_service import analytics_owner


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("")
@require_auth
def analytics_route():
    try:
        return jsonify(analytics_service.build_analytics(owner=analytics_owner()))
    except Exception:
        current_app.logger.exception("Failed to build analytics")
        return jsonify({"error": "Internal server error"}), 500
