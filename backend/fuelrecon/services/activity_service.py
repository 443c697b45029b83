# Overview: Service-layer operations for the activity log sink.

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog
from ..time_utils import to_utc_z
from .store import returns_result
"""
Activity Log Invariants

- Append-only: no updates or deletes of existing entries.
- Written AFTER the primary operation has committed, in its own commit.
- Fire-and-forget: a failed write is rolled back and logged as a warning;
  the caller always proceeds as if it succeeded.
"""


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return f"{value:f}"
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def log_activity(
    *,
    action: str,
    entity_type: str,
    entity_id: Any,
    actor_id: Any = None,
    station_id: int | None = None,
    details: Optional[dict] = None,
) -> ActivityLog | None:
    try:
        entry = ActivityLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=str(actor_id) if actor_id is not None else None,
            station_id=station_id,
            details=_jsonable(details) if details else None,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Activity log write failed: %s %s:%s",
            action,
            entity_type,
            entity_id,
            exc_info=True,
        )
        return None


@returns_result("list_activity")
def list_activity(
    *,
    entity_type: str | None = None,
    actor_id: str | None = None,
    station_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 200,
) -> list[ActivityLog]:
    query = db.session.query(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    if entity_type:
        query = query.filter(ActivityLog.entity_type == entity_type)
    if actor_id:
        query = query.filter(ActivityLog.actor_id == actor_id)
    if station_id is not None:
        query = query.filter(ActivityLog.station_id == station_id)
    if start:
        query = query.filter(ActivityLog.created_at >= start)
    if end:
        query = query.filter(ActivityLog.created_at <= end)
    return query.limit(limit).all()
