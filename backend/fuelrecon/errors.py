# Overview: Error kinds shared by services, routes and models.

"""
Error Kinds

Every failure this core reports carries:
- kind: the broad category (drives the HTTP status at the boundary)
- code: the specific business condition (e.g., ShiftNotClosed)
- message: human-readable reason, safe to show to users
- detail: optional structured context (ids, offending values)

Services return these inside Err(...) results; models raise them from
constructor validation because an invalid record must never be built.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for every error reported by the reconciliation core."""

    kind = "error"
    default_code = "Error"
    http_status = 500

    def __init__(self, message: str, *, code: str | None = None, detail: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.detail = detail or {}

    def to_dict(self) -> dict:
        payload = {
            "error": self.message,
            "kind": self.kind,
            "code": self.code,
        }
        if self.detail:
            payload["detail"] = self.detail
        return payload

    def __repr__(self) -> str:
        return f"<{type(self).__name__} code={self.code} message={self.message!r}>"


class ValidationError(ServiceError, ValueError):
    """400-level input problem (empty note, unknown report type, bad amount)."""

    kind = "validation"
    default_code = "ValidationError"
    http_status = 400


class NotFoundError(ServiceError):
    """Unknown shift, mismatch, employee, station or report."""

    kind = "not_found"
    default_code = "NotFound"
    http_status = 404


class StateError(ServiceError):
    """Illegal transition (resolving twice, reconciling an open shift)."""

    kind = "state"
    default_code = "StateError"
    http_status = 409


class DataIntegrityError(ServiceError):
    """Stored data contradicts an invariant (negative meter delta)."""

    kind = "data_integrity"
    default_code = "DataIntegrityError"
    http_status = 422


class DependencyError(ServiceError):
    """Data store failure or timeout. Retryable by the caller."""

    kind = "dependency"
    default_code = "DependencyError"
    http_status = 503


class ConcurrencyError(ServiceError):
    """Lost a duplicate-key race on mismatch or report creation."""

    kind = "concurrency"
    default_code = "ConcurrencyError"
    http_status = 409


# =============================================================================
# Named business conditions
# =============================================================================

def shift_not_found(shift_id) -> NotFoundError:
    return NotFoundError("Shift not found", code="ShiftNotFound", detail={"shift_id": shift_id})


def shift_not_closed(shift_id, open_reading_ids: list[int] | None = None) -> StateError:
    detail = {"shift_id": shift_id}
    if open_reading_ids:
        detail["open_reading_ids"] = open_reading_ids
    return StateError("Shift is not closed", code="ShiftNotClosed", detail=detail)


def invalid_meter_delta(reading_id, start_reading, end_reading) -> DataIntegrityError:
    return DataIntegrityError(
        "End reading is lower than start reading",
        code="InvalidMeterDelta",
        detail={
            "reading_id": reading_id,
            "start_reading": str(start_reading),
            "end_reading": str(end_reading),
        },
    )


def employee_not_found(employee_id) -> NotFoundError:
    return NotFoundError(
        "Employee not found or has no hourly rate",
        code="EmployeeNotFound",
        detail={"employee_id": employee_id},
    )


def station_not_found(station_id) -> NotFoundError:
    return NotFoundError("Station not found", code="StationNotFound", detail={"station_id": station_id})


def mismatch_not_found(mismatch_id) -> NotFoundError:
    return NotFoundError("Sales mismatch not found", code="MismatchNotFound", detail={"mismatch_id": mismatch_id})
