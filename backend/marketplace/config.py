# backend/marketplace/config.py
from __future__ import annotations
import os


BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # development | production (production hides internal error detail)
    APP_ENV = os.environ.get("APP_ENV", "development")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///marketplace.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    PORT = int(os.environ.get("PORT", "3000"))

    # Product images: stored on disk, served from /uploads/<path>
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(BACKEND_DIR, "uploads"))
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    # Which order statuses a buyer may cancel: "marketplace" or "point_of_sale"
    ORDER_CANCEL_POLICY = os.environ.get("ORDER_CANCEL_POLICY", "marketplace")

    # 1 = no automatic retry of order transactions
    ORDER_TX_ATTEMPTS = int(os.environ.get("ORDER_TX_ATTEMPTS", "1"))

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Comma-separated browser origins allowed to call the API (Vite dev/preview by default)
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if o.strip()
    )
