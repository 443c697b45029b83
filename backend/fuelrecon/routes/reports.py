from flask import Blueprint, current_app, jsonify, request

from ..responses import result_response
from ..services import report_service
from ..time_utils import parse_iso_date, to_iso_date
from ..validation import format_money


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _date_range_args():
    start = parse_iso_date(request.args.get("start"))
    end = parse_iso_date(request.args.get("end"))
    if start is None and end is None:
        return None
    return start, end


@reports_bp.post("/financial")
def generate_financial_report_route():
    data = request.get_json(silent=True) or {}

    station_id = data.get("station_id")
    report_type = data.get("report_type")
    if not station_id or not report_type:
        return jsonify({"error": "station_id and report_type are required"}), 400

    try:
        report_date = parse_iso_date(data.get("report_date"))
    except ValueError:
        return jsonify({"error": "report_date must be YYYY-MM-DD"}), 400
    if report_date is None:
        return jsonify({"error": "report_date is required"}), 400

    try:
        result = report_service.generate_financial_report(station_id, report_type, report_date)
        return result_response(result, lambda report: {"report": report.to_dict()}, status=201)
    except Exception:
        current_app.logger.exception("Failed to generate financial report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/financial")
def list_financial_reports_route():
    station_id = request.args.get("station_id", type=int)
    if not station_id:
        return jsonify({"error": "station_id is required"}), 400

    try:
        date_range = _date_range_args()
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD"}), 400

    try:
        result = report_service.get_financial_reports(
            station_id,
            report_type=request.args.get("report_type") or None,
            date_range=date_range,
        )
        return result_response(result, lambda reports: {
            "reports": [r.to_dict() for r in reports],
            "count": len(reports),
        })
    except Exception:
        current_app.logger.exception("Failed to list financial reports")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/station-comparison")
def station_comparison_route():
    report_type = request.args.get("report_type")
    if not report_type:
        return jsonify({"error": "report_type is required"}), 400

    try:
        date_range = _date_range_args()
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD"}), 400

    try:
        result = report_service.get_station_comparison(report_type, date_range=date_range)
        return result_response(result, lambda comparison: {
            "report_type": comparison["report_type"],
            "start": to_iso_date(comparison["start"]),
            "end": to_iso_date(comparison["end"]),
            "stations": [
                {
                    "station_id": row["station_id"],
                    "station_name": row["station_name"],
                    "report_count": row["report_count"],
                    "sales_amount": format_money(row["sales_amount"]),
                    "expenses_amount": format_money(row["expenses_amount"]),
                    "profit_amount": format_money(row["profit_amount"]),
                }
                for row in comparison["rows"]
            ],
        })
    except Exception:
        current_app.logger.exception("Failed to build station comparison")
        return jsonify({"error": "Internal server error"}), 500
