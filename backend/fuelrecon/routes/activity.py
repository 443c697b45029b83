# Overview: Flask API routes for the activity log; read-only.

from flask import Blueprint, jsonify, request

from ..responses import result_response
from ..services import activity_service
from ..time_utils import parse_iso_datetime


activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")


@activity_bp.get("")
def list_activity_route():
    """
    Recent activity, newest first.

    Query: entity_type, actor_id, station_id, start, end (inclusive), limit (max 1000)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    limit = request.args.get("limit", 200, type=int)
    limit = max(1, min(limit, 1000))

    result = activity_service.list_activity(
        entity_type=request.args.get("entity_type"),
        actor_id=request.args.get("actor_id"),
        station_id=request.args.get("station_id", type=int),
        start=start,
        end=end,
        limit=limit,
    )
    return result_response(result, lambda entries: {
        "activity": [e.to_dict() for e in entries],
        "count": len(entries),
    })
