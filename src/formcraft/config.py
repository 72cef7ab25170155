from __future__ import annotations

import os
import re
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

FIELD_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]*$")

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
PURPOSE_MAX_LENGTH = 500
PASSWORD_MIN_LENGTH = 6
SHARE_TOKEN_LENGTH = 10


def _int_env(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/app.db"))
        self.json_path = Path(os.getenv("JSON_PATH", "./data/jsonstore.json"))
        self.upload_dir = Path(os.getenv("UPLOAD_DIR", "./data/uploads"))
        self.upload_max_bytes = _int_env("UPLOAD_MAX_BYTES", 100 * 1024 * 1024)
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = _int_env("PORT", 8000) or 8000
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.jwt_secret = os.getenv("JWT_SECRET", "")
        self.jwt_algorithm = "HS256"
        self.jwt_expires_minutes = _int_env("JWT_EXPIRES_MINUTES", 7 * 24 * 60) or 60
        self.ai_provider = os.getenv("AI_PROVIDER", "groq").lower()
        self.groq_api_key = os.getenv("GROQ_API_KEY", "")
        self.claude_api_key = os.getenv("CLAUDE_API_KEY", "")
        self.ai_timeout = float(os.getenv("AI_TIMEOUT", "30"))
        self.cors_origin = os.getenv("CORS_ORIGIN", "http://localhost:5173")


def ensure_dirs(settings: Settings) -> None:
    settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    settings.json_path.parent.mkdir(parents=True, exist_ok=True)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
