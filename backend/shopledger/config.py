# backend/shopledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Product listing and transaction history only show the operator's own rows
    SCOPE_TO_OPERATOR = _env_flag("SHOPLEDGER_SCOPE_TO_OPERATOR", True)
    # Analytics folds over every operator's rows unless enabled
    SCOPE_ANALYTICS_TO_OPERATOR = _env_flag("SHOPLEDGER_SCOPE_ANALYTICS", False)

    # Business day for exports (Asia/Ulaanbaatar has no DST)
    REPORT_UTC_OFFSET_HOURS = int(os.environ.get("SHOPLEDGER_UTC_OFFSET_HOURS", "8"))

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SHOPLEDGER_SESSION_HOURS", "24"))

    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "SHOPLEDGER_CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if o.strip()
    )
