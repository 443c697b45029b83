# Overview: JSON response helpers shared by API routes.

from __future__ import annotations

from typing import Callable

from flask import jsonify

from .errors import ServiceError
from .results import Result


def error_response(error: ServiceError):
    """Render a ServiceError as {"error", "kind", "code"[, "detail"]} with its HTTP status."""
    return jsonify(error.to_dict()), error.http_status


def result_response(result: Result, render: Callable[[object], dict], status: int = 200):
    """
    Render a service Result.

    Err -> error body and status from the error kind.
    Ok  -> render(value), plus a "warnings" list when the result carries any.
    """
    if not result.ok:
        return error_response(result.error)

    body = render(result.value)
    if result.warnings:
        body["warnings"] = [w.to_dict() for w in result.warnings]
    return jsonify(body), status


def reconciliation_body(result: Result | None, tolerance) -> dict | None:
    """Nested rendering of a reconciliation triggered by a shift close."""
    if result is None:
        return None
    if not result.ok:
        return result.error.to_dict()
    body = {"mismatch": result.value.to_dict(tolerance=tolerance)}
    if result.warnings:
        body["warnings"] = [w.to_dict() for w in result.warnings]
    return body
