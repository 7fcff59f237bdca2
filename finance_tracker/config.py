"""Configuration management for the finance tracker.

This module centralizes all configuration values including paths,
the storage backend, the default user and logging, with environment
variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# Base project root - assumes this file is in finance_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("FINTRACK_DATA_DIR", _PROJECT_ROOT / "data"))

# Storage
DB_PATH = Path(
    os.getenv("FINTRACK_DB_PATH", DATA_DIR / "finance_tracker.db")
).resolve()
JSON_STORE_PATH = Path(
    os.getenv("FINTRACK_JSON_PATH", DATA_DIR / "finance_tracker.json")
).resolve()
STORE_BACKEND = os.getenv("FINTRACK_BACKEND", "sqlite").strip().lower()
SUPPORTED_BACKENDS = ("sqlite", "json")

# Identity used when no authentication collaborator supplies one
DEFAULT_USER_ID = os.getenv("FINTRACK_USER_ID", "local-user")

LOG_LEVEL = os.getenv("FINTRACK_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_logging_configured = False


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, DB_PATH.parent, JSON_STORE_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Install the root logging handler once per process."""
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
    _logging_configured = True
