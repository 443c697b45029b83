# Overview: Flask API routes for shift and meter reading operations; parses input and returns JSON responses.

"""
Shift Routes

- POST /api/shifts starts a shift with its opening meter readings
- POST /api/shifts/<id>/end closes it; with auto-reconcile enabled the
  reconciliation outcome is returned under "reconciliation"
- POST /api/shifts/<id>/reconcile runs the reconciliation calculator
"""

from flask import Blueprint, current_app, jsonify, request

from ..responses import reconciliation_body, result_response
from ..services import reconciliation_service, shift_service


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.post("")
def start_shift_route():
    data = request.get_json(silent=True) or {}

    station_id = data.get("station_id")
    employee_id = data.get("employee_id")
    if not station_id or not employee_id:
        return jsonify({"error": "station_id and employee_id are required"}), 400

    readings = data.get("meter_readings") or []
    if not isinstance(readings, list):
        return jsonify({"error": "meter_readings must be a list"}), 400

    try:
        result = shift_service.start_shift(
            station_id=station_id,
            employee_id=employee_id,
            dispenser_ids=data.get("dispenser_ids"),
            starting_cash=data.get("starting_cash", "0"),
            meter_readings=readings,
            notes=data.get("notes"),
        )
        return result_response(result, lambda shift: {"shift": shift.to_dict()}, status=201)
    except Exception:
        current_app.logger.exception("Failed to start shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("")
def list_shifts_route():
    station_id = request.args.get("station_id", type=int)
    if not station_id:
        return jsonify({"error": "station_id is required"}), 400

    status = request.args.get("status")
    employee_id = request.args.get("employee_id", type=int)
    limit = min(request.args.get("limit", 100, type=int), 500)

    try:
        result = shift_service.list_shifts(
            station_id=station_id,
            status=status,
            employee_id=employee_id,
            limit=limit,
        )
        return result_response(result, lambda shifts: {
            "shifts": [s.to_dict(include_readings=False) for s in shifts],
            "count": len(shifts),
        })
    except Exception:
        current_app.logger.exception("Failed to list shifts")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("/<int:shift_id>")
def get_shift_route(shift_id: int):
    result = shift_service.get_shift(shift_id)
    return result_response(result, lambda shift: {"shift": shift.to_dict()})


@shifts_bp.post("/<int:shift_id>/end")
def end_shift_route(shift_id: int):
    data = request.get_json(silent=True) or {}

    readings = data.get("meter_readings") or []
    if not isinstance(readings, list):
        return jsonify({"error": "meter_readings must be a list"}), 400

    try:
        result = shift_service.end_shift(
            shift_id=shift_id,
            ending_cash=data.get("ending_cash"),
            meter_readings=readings,
            notes=data.get("notes"),
        )
        tolerance = reconciliation_service.get_mismatch_tolerance()
        return result_response(result, lambda value: {
            "shift": value["shift"].to_dict(),
            "reconciliation": reconciliation_body(value["reconciliation"], tolerance),
        })
    except Exception:
        current_app.logger.exception("Failed to end shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/<int:shift_id>/cancel")
def cancel_shift_route(shift_id: int):
    data = request.get_json(silent=True) or {}

    try:
        result = shift_service.cancel_shift(shift_id=shift_id, reason=data.get("reason"))
        return result_response(result, lambda shift: {"shift": shift.to_dict()})
    except Exception:
        current_app.logger.exception("Failed to cancel shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/readings/<int:reading_id>/end")
def record_end_reading_route(reading_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("reading") is None:
        return jsonify({"error": "reading is required"}), 400

    try:
        result = shift_service.record_end_reading(reading_id=reading_id, reading=data.get("reading"))
        tolerance = reconciliation_service.get_mismatch_tolerance()
        return result_response(result, lambda value: {
            "reading": value["reading"].to_dict(),
            "reconciliation": reconciliation_body(value["reconciliation"], tolerance),
        })
    except Exception:
        current_app.logger.exception("Failed to record closing meter reading")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/<int:shift_id>/reconcile")
def reconcile_shift_route(shift_id: int):
    try:
        result = reconciliation_service.calculate_sales_mismatch(shift_id)
        tolerance = reconciliation_service.get_mismatch_tolerance()
        return result_response(
            result,
            lambda mismatch: {"mismatch": mismatch.to_dict(tolerance=tolerance)},
            status=201,
        )
    except Exception:
        current_app.logger.exception("Failed to reconcile shift")
        return jsonify({"error": "Internal server error"}), 500
