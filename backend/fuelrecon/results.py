# Overview: Tagged results returned by service boundary operations.

"""
Service Results

WHY: Business conditions (missing price, open shift, already resolved) are
ordinary outcomes, not crashes. Boundary operations return Ok or Err so the
caller decides whether to proceed partially or abort.

- Ok(value, warnings): success, optionally with non-fatal warnings
  (e.g., PriceUnavailable during reconciliation)
- Err(error): a ServiceError describing kind, code and reason
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .errors import ServiceError


@dataclass(frozen=True)
class ServiceWarning:
    """Non-fatal condition surfaced next to a successful result."""
    code: str
    message: str
    detail: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail}


@dataclass(frozen=True)
class Ok:
    value: Any = None
    warnings: tuple[ServiceWarning, ...] = ()

    ok = True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Err:
    error: ServiceError

    ok = False

    @property
    def warnings(self) -> tuple[ServiceWarning, ...]:
        return ()

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def kind(self) -> str:
        return self.error.kind

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Ok, Err]
