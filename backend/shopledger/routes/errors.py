# Overview: Shared mapping from service exceptions to JSON error responses.

from flask import jsonify

from ..errors import ShopError
from ..validation import ValidationError


def validation_error_response(e: ValidationError):
    body = {"error": str(e)}
    if e.field:
        body["field"] = e.field
    return jsonify(body), 400


def shop_error_response(e: ShopError, status: int):
    return jsonify({"error": e.message, "details": e.details}), status
