# Overview: Flask API routes for transactions; sale, history, reversal and spreadsheet export.

"""
Transaction routes

- POST   /api/transactions                  complete a sale from a cart
- GET    /api/transactions                  history, newest first
- GET    /api/transactions/<id>             one transaction
- DELETE /api/transactions/<id>?restore_stock=true
- GET    /api/transactions/export           .xlsx of visible history
- GET    /api/transactions/export/today     .xlsx of today's (local day) sales
- GET    /api/transactions/<id>/export      .xlsx of one transaction
"""

from flask import Blueprint, current_app, g, jsonify, request, send_file

from ..decorators import require_auth
from ..errors import InsufficientStockError, NotFoundError, StorageError
from ..services import export_service, reversal_service, sales_service
from ..services.scope_service import visible_owner
from ..validation import ValidationError
from .errors import shop_error_response, validation_error_response


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

TRUE_VALUES = {"1", "true", "yes"}


def _restore_stock_flag() -> bool:
    raw = request.args.get("restore_stock")
    if raw is None:
        raw = request.args.get("restoreStock", "false")
    return raw.strip().lower() in TRUE_VALUES


def _xlsx_response(transactions, *, sheet_title: str, prefix: str, numbered: bool = True):
    offset = current_app.config["REPORT_UTC_OFFSET_HOURS"]
    buffer = export_service.build_workbook(
        transactions, sheet_title=sheet_title, utc_offset_hours=offset, numbered=numbered
    )
    return send_file(
        buffer,
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_service.export_filename(prefix, offset),
    )


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    """
    Complete a sale.

    Body: {"items": [{product_id, product_name, quantity, price}, ...],
           "customer_name": optional}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        txn = sales_service.complete_sale(
            data.get("items"),
            operator=g.operator,
            customer_name=data.get("customer_name"),
        )
    except ValidationError as e:
        return validation_error_response(e)
    except (NotFoundError, InsufficientStockError) as e:
        return shop_error_response(e, 400)
    except StorageError:
        return jsonify({"error": "Internal server error"}), 500
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(txn.to_dict()), 201


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    transactions = sales_service.list_transactions(owner=visible_owner())
    return jsonify({"items": [t.to_dict() for t in transactions], "count": len(transactions)})


@transactions_bp.get("/export")
@require_auth
def export_transactions_route():
    transactions = sales_service.list_transactions(owner=visible_owner())
    return _xlsx_response(transactions, sheet_title="Transactions", prefix="transactions")


@transactions_bp.get("/export/today")
@require_auth
def export_today_route():
    offset = current_app.config["REPORT_UTC_OFFSET_HOURS"]
    transactions = export_service.select_today(
        sales_service.list_transactions(owner=visible_owner()), offset
    )
    return _xlsx_response(transactions, sheet_title="Today", prefix="transactions-today")


@transactions_bp.get("/<string:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: str):
    txn = sales_service.get_transaction(transaction_id, owner=visible_owner())
    if not txn:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify(txn.to_dict())


@transactions_bp.get("/<string:transaction_id>/export")
@require_auth
def export_transaction_route(transaction_id: str):
    txn = sales_service.get_transaction(transaction_id, owner=visible_owner())
    if not txn:
        return jsonify({"error": "Transaction not found"}), 404
    return _xlsx_response(
        [txn], sheet_title="Transaction", prefix=f"transaction-{txn.id[:8]}", numbered=False
    )


@transactions_bp.delete("/<string:transaction_id>")
@require_auth
def delete_transaction_route(transaction_id: str):
    """
    Reverse a sale. restore_stock=true adds the quantities back to stock.
    """
    try:
        result = reversal_service.reverse_transaction(
            transaction_id,
            restore_stock=_restore_stock_flag(),
            owner=visible_owner(),
        )
    except NotFoundError as e:
        return shop_error_response(e, 404)
    except StorageError:
        return jsonify({"error": "Internal server error"}), 500
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Transaction deleted", **result.to_dict()}), 200
