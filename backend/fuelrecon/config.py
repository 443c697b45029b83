# backend/fuelrecon/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fuelrecon.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fuelrecon.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Mismatches larger than this (absolute, in currency units) are flagged significant
    MISMATCH_TOLERANCE = os.environ.get("MISMATCH_TOLERANCE", "1.00")

    # Run reconciliation once when a shift is closed with every reading filled in
    AUTO_RECONCILE_ON_SHIFT_END = _env_bool("AUTO_RECONCILE_ON_SHIFT_END", True)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
