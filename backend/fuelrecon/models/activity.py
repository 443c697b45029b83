from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ActivityLog(db.Model):
    """
    Append-only activity trail (who generated, detected, resolved what).

    WHY: Audit views read this. Writes are fire-and-forget: a failure here
    never fails the operation being logged.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_entity", "entity_type", "entity_id"),
        db.Index("ix_activity_logs_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # What happened
    action = db.Column(db.String(32), nullable=False, index=True)  # e.g., detect, resolve, generate, create
    entity_type = db.Column(db.String(64), nullable=False)  # e.g., sales_mismatch, financial_report
    entity_id = db.Column(db.String(64), nullable=False)

    # Who and where
    actor_id = db.Column(db.String(64), nullable=True, index=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=True, index=True)

    # Optional structured metadata (keep small; do not denormalize domain state)
    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "station_id": self.station_id,
            "details": self.details,
            "created_at": to_utc_z(self.created_at),
        }
