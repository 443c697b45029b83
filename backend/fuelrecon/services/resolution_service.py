# Overview: Service-layer operations for the mismatch resolution workflow.

"""
Mismatch Resolution Workflow

States: UNRESOLVED (initial) -> RESOLVED (terminal). There is no reopen
transition and no automatic resolution; every resolution is a person
calling resolve_sales_mismatch() with a note.

The row is locked for update and the mismatch carries an optimistic
version column, so of two concurrent resolvers exactly one wins; the
retry sees the committed state and reports AlreadyResolved.
"""

from __future__ import annotations

from ..errors import StateError, ValidationError, mismatch_not_found
from ..extensions import db
from ..models import SalesMismatch
from ..results import Err, Ok
from ..time_utils import utcnow
from .activity_service import log_activity
from .concurrency import lock_for_update, run_with_retry
from .store import returns_result


@returns_result("resolve_sales_mismatch")
def resolve_sales_mismatch(mismatch_id: int, resolver_id, note: str | None):
    """
    Resolve a flagged mismatch.

    Args:
        mismatch_id: Mismatch to resolve
        resolver_id: Who resolved it (employee/user id from the caller)
        note: Resolution note (required, not blank)

    Returns:
        Ok(SalesMismatch) or Err(ValidationError / NotFound / AlreadyResolved)
    """
    if note is None or not str(note).strip():
        return Err(ValidationError("Resolution note is required", detail={"field": "note"}))
    if resolver_id is None or not str(resolver_id).strip():
        return Err(ValidationError("Resolver is required", detail={"field": "resolver_id"}))

    note = str(note).strip()
    resolver = str(resolver_id).strip()

    def _op():
        mismatch = lock_for_update(db.session.query(SalesMismatch).filter_by(id=mismatch_id)).first()
        if not mismatch:
            return Err(mismatch_not_found(mismatch_id))

        if mismatch.is_resolved:
            return Err(StateError(
                "Sales mismatch already resolved",
                code="AlreadyResolved",
                detail={"mismatch_id": mismatch_id, "resolved_by": mismatch.resolved_by},
            ))

        mismatch.mark_resolved(resolver_id=resolver, note=note, at=utcnow())
        db.session.commit()
        return Ok(mismatch)

    result = run_with_retry(_op)
    if not result.ok:
        return result

    mismatch = result.value
    log_activity(
        action="resolve",
        entity_type="sales_mismatch",
        entity_id=mismatch.id,
        actor_id=resolver,
        station_id=mismatch.shift.station_id,
        details={"shift_id": mismatch.shift_id, "resolution_note": note},
    )
    return result
