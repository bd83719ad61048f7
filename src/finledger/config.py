"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    """Read a float knob from the environment, rejecting garbage loudly."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "finledger"
    DB_FILENAME = "finledger.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    MIN_USERNAME_LENGTH = 3
    MIN_PASSWORD_LENGTH = 4
    RUNWAY_SENTINEL = 999.0

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("FINLEDGER_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("FINLEDGER_DATABASE_URL", self._build_sqlite_url())

        # Analytics thresholds; ratios for anomalies, percentages for trends.
        self.ANOMALY_THRESHOLD = _env_float("FINLEDGER_ANOMALY_THRESHOLD", 2.0)
        self.MOM_THRESHOLD = _env_float("FINLEDGER_MOM_THRESHOLD", 5.0)
        self.TREND_THRESHOLD = _env_float("FINLEDGER_TREND_THRESHOLD", 10.0)

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("FINLEDGER_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        connect_args: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        return {"connect_args": connect_args}


class TestConfig(BaseConfig):
    """Configuration for tests; callers usually override DATA_DIR/DATABASE_URL."""

    __test__ = False  # keep pytest from collecting this as a test class

    SQLITE_PRAGMAS = {"foreign_keys": "on"}
