# Overview: Flask API routes for sales mismatch review and resolution; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..responses import result_response
from ..services import reconciliation_service, resolution_service


mismatches_bp = Blueprint("mismatches", __name__, url_prefix="/api/mismatches")


def _parse_bool(value: str | None):
    if value is None or value == "":
        return None
    lowered = value.strip().lower()
    if lowered in {"true", "1", "yes"}:
        return True
    if lowered in {"false", "0", "no"}:
        return False
    raise ValueError("resolved must be true or false")


@mismatches_bp.get("")
def list_mismatches_route():
    station_id = request.args.get("station_id", type=int)
    if not station_id:
        return jsonify({"error": "station_id is required"}), 400

    try:
        resolved = _parse_bool(request.args.get("resolved"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = reconciliation_service.get_sales_mismatches(station_id, resolved=resolved)
        tolerance = reconciliation_service.get_mismatch_tolerance()
        return result_response(result, lambda mismatches: {
            "mismatches": [m.to_dict(tolerance=tolerance) for m in mismatches],
            "count": len(mismatches),
        })
    except Exception:
        current_app.logger.exception("Failed to list sales mismatches")
        return jsonify({"error": "Internal server error"}), 500


@mismatches_bp.get("/<int:mismatch_id>")
def get_mismatch_route(mismatch_id: int):
    result = reconciliation_service.get_sales_mismatch(mismatch_id)
    tolerance = reconciliation_service.get_mismatch_tolerance()
    return result_response(result, lambda mismatch: {"mismatch": mismatch.to_dict(tolerance=tolerance)})


@mismatches_bp.post("/<int:mismatch_id>/resolve")
def resolve_mismatch_route(mismatch_id: int):
    """
    Resolve a mismatch.

    Body: {"resolver_id": "emp-7", "note": "Pump 3 drift"}
    """
    data = request.get_json(silent=True) or {}

    try:
        result = resolution_service.resolve_sales_mismatch(
            mismatch_id,
            data.get("resolver_id"),
            data.get("note"),
        )
        tolerance = reconciliation_service.get_mismatch_tolerance()
        return result_response(result, lambda mismatch: {"mismatch": mismatch.to_dict(tolerance=tolerance)})
    except Exception:
        current_app.logger.exception("Failed to resolve sales mismatch")
        return jsonify({"error": "Internal server error"}), 500
