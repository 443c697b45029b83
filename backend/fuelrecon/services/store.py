# Overview: Result boundary for service operations that touch the data store.

"""
Store Boundary

Every public service operation is wrapped with @returns_result:
- returning Ok/Err passes through unchanged
- returning a plain value is wrapped in Ok(value)
- a ServiceError raised by model constructor validation becomes Err(error)
- an optimistic-locking conflict becomes Err(ConcurrencyError)
- any other SQLAlchemy failure becomes Err(DependencyError) (retryable)

The session is rolled back for every Err so no half-written unit of work
leaks into the next operation.
"""

from __future__ import annotations

from functools import wraps

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyError, DependencyError, ServiceError
from ..extensions import db
from ..results import Err, Ok


def returns_result(operation: str):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                result = func(*args, **kwargs)
            except ServiceError as exc:
                db.session.rollback()
                return Err(exc)
            except StaleDataError:
                db.session.rollback()
                current_app.logger.warning("Concurrent update conflict during %s", operation)
                return Err(ConcurrencyError(
                    "Record was modified concurrently, retry the operation",
                    detail={"operation": operation},
                ))
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Data store failure during %s", operation)
                return Err(DependencyError(
                    "Data store unavailable",
                    detail={"operation": operation},
                ))

            if isinstance(result, Err):
                db.session.rollback()
                return result
            if isinstance(result, Ok):
                return result
            return Ok(result)
        return wrapper
    return decorator


def get_by_id(model, entity_id):
    """Primary-key lookup; None when missing."""
    if entity_id is None:
        return None
    return db.session.get(model, entity_id)
