from __future__ import annotations

import os
from pathlib import Path
from typing import Any

BASE_DIR = Path(__file__).resolve().parent

STORAGE_BACKENDS = {"sqlite", "json"}


def _int_env(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Settings:
    def __init__(self, **overrides: Any) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        if self.storage_backend not in STORAGE_BACKENDS:
            self.storage_backend = "sqlite"
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/app.db"))
        self.json_path = Path(os.getenv("JSON_PATH", "./data/jsonstore.json"))
        self.upload_dir = Path(os.getenv("UPLOAD_DIR", "./data/uploads"))
        self.upload_max_bytes = _int_env("UPLOAD_MAX_BYTES", None)
        self.session_secret = os.getenv("SESSION_SECRET", "change_this_secret")
        self.session_max_age = _int_env("SESSION_MAX_AGE", 60 * 60 * 24)
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = _int_env("PORT", 8000)
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self, key, value)


def ensure_dirs(settings: Settings) -> None:
    settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    settings.json_path.parent.mkdir(parents=True, exist_ok=True)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
