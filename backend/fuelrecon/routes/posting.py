# Overview: Flask API routes for posting sales transactions and expenses; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..responses import result_response
from ..services import posting_service
from ..time_utils import parse_iso_date


posting_bp = Blueprint("posting", __name__, url_prefix="/api")


@posting_bp.post("/transactions")
def record_transaction_route():
    data = request.get_json(silent=True) or {}

    station_id = data.get("station_id")
    shift_id = data.get("shift_id")
    if not station_id or not shift_id:
        return jsonify({"error": "station_id and shift_id are required"}), 400

    try:
        result = posting_service.record_transaction(
            station_id=station_id,
            shift_id=shift_id,
            total_amount=data.get("total_amount"),
            payment_method=data.get("payment_method"),
        )
        return result_response(result, lambda txn: {"transaction": txn.to_dict()}, status=201)
    except Exception:
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Internal server error"}), 500


@posting_bp.post("/expenses")
def record_expense_route():
    data = request.get_json(silent=True) or {}

    station_id = data.get("station_id")
    if not station_id:
        return jsonify({"error": "station_id is required"}), 400

    try:
        expense_date = parse_iso_date(data.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    if expense_date is None:
        return jsonify({"error": "date is required"}), 400

    try:
        result = posting_service.record_expense(
            station_id=station_id,
            amount=data.get("amount"),
            date=expense_date,
            expense_type=data.get("expense_type"),
            description=data.get("description"),
            actor_id=data.get("actor_id"),
        )
        return result_response(result, lambda expense: {"expense": expense.to_dict()}, status=201)
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500


@posting_bp.get("/expenses")
def list_expenses_route():
    station_id = request.args.get("station_id", type=int)
    if not station_id:
        return jsonify({"error": "station_id is required"}), 400

    try:
        start = parse_iso_date(request.args.get("start"))
        end = parse_iso_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD"}), 400

    date_range = (start, end) if start or end else None
    result = posting_service.list_expenses(station_id, date_range=date_range)
    return result_response(result, lambda expenses: {
        "expenses": [e.to_dict() for e in expenses],
        "count": len(expenses),
    })
