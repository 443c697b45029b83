# Overview: Flask API routes for employee pay; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..responses import result_response
from ..services import salary_service
from ..time_utils import parse_iso_datetime, to_utc_z
from ..validation import format_money


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("/<int:employee_id>/salary")
def employee_salary_route(employee_id: int):
    """
    Salary for shifts started in [start, end).

    Query: start, end (ISO-8601, required); as_of (optional, defaults to now)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
        as_of = parse_iso_datetime(request.args.get("as_of"))
    except ValueError:
        return jsonify({"error": "start, end and as_of must be ISO-8601 datetimes"}), 400

    if not start or not end:
        return jsonify({"error": "start and end are required"}), 400

    try:
        result = salary_service.calculate_employee_salary(employee_id, start, end, as_of=as_of)
        return result_response(result, lambda summary: {
            "employee_id": summary["employee_id"],
            "period_start": to_utc_z(summary["period_start"]),
            "period_end": to_utc_z(summary["period_end"]),
            "hourly_rate": format_money(summary["hourly_rate"]),
            "total_hours": f"{summary['total_hours']:.4f}",
            "salary": format_money(summary["salary"]),
            "shift_count": summary["shift_count"],
            "open_shift_count": summary["open_shift_count"],
        })
    except Exception:
        current_app.logger.exception("Failed to calculate employee salary")
        return jsonify({"error": "Internal server error"}), 500
