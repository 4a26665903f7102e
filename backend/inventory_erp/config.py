# backend/inventory_erp/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///inventory_erp.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_JSON = _env_bool("LOG_JSON")

    # Supplier product lookups: GET {api_base_url}/products/{sku}
    SUPPLIER_API_TIMEOUT_SECONDS = float(os.environ.get("SUPPLIER_API_TIMEOUT_SECONDS", "10"))
    SUPPLIER_SYNC_MAX_WORKERS = int(os.environ.get("SUPPLIER_SYNC_MAX_WORKERS", "4"))

    EXCHANGE_RATE_API_URL = os.environ.get(
        "EXCHANGE_RATE_API_URL",
        "https://api.exchangerate-api.com/v4/latest",
    )
    EXCHANGE_RATE_TIMEOUT_SECONDS = float(os.environ.get("EXCHANGE_RATE_TIMEOUT_SECONDS", "10"))
    EXCHANGE_RATE_CACHE_SECONDS = int(os.environ.get("EXCHANGE_RATE_CACHE_SECONDS", "3600"))

    # Low-stock alert e-mail (Resend-compatible HTTP API)
    EMAIL_API_URL = os.environ.get("EMAIL_API_URL", "https://api.resend.com/emails")
    EMAIL_TIMEOUT_SECONDS = float(os.environ.get("EMAIL_TIMEOUT_SECONDS", "10"))
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY")
    ALERT_EMAIL_FROM = os.environ.get("ALERT_EMAIL_FROM", "alerts@inventory-erp.local")
    ALERT_EMAIL_TO = os.environ.get("ALERT_EMAIL_TO")

    # Shared secret for the scheduled job endpoint; unset disables it
    CRON_SECRET = os.environ.get("CRON_SECRET")

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )
