# core/logging_config.py
"""
Logging centralizado – Taller

✔ Consola + archivo general rotativo (logs/taller.log)
✔ Canal de auditoría de devoluciones (JSON por línea, logs/devoluciones.log)
✔ Nivel según entorno (DEBUG solo con APP_DEBUG)
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any

from core.config import settings


# ============================
#   PATHS
# ============================

BASE_DIR = Path(__file__).resolve().parent.parent
LOG_DIR = BASE_DIR / "logs"
LOG_FILE = LOG_DIR / "taller.log"
AUDIT_LOG_FILE = LOG_DIR / "devoluciones.log"

LOGGER_NAME = "taller"
AUDIT_LOGGER_NAME = f"{LOGGER_NAME}.devoluciones"


def _rotating(filename: Path, formatter: str, level: str) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": formatter,
        "filename": str(filename),
        "maxBytes": 5 * 1024 * 1024,  # 5 MB
        "backupCount": 10,
        "encoding": "utf-8",
        "level": level,
    }


def build_logging_config(log_level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "verbose": {
                "format": (
                    "%(asctime)s | %(levelname)s | "
                    "%(name)s | %(module)s:%(lineno)d | %(message)s"
                ),
            },
            # el mensaje ya viene serializado como JSON
            "json_line": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": log_level,
            },
            "file": _rotating(LOG_FILE, "verbose", log_level),
            "audit_file": _rotating(AUDIT_LOG_FILE, "json_line", "INFO"),
        },
        "root": {
            "level": log_level,
            "handlers": ["console", "file"],
        },
        "loggers": {
            AUDIT_LOGGER_NAME: {
                "level": "INFO",
                "handlers": ["audit_file"],
                "propagate": True,
            },
            "uvicorn": {"level": "INFO"},
            "uvicorn.error": {"level": "INFO"},
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "INFO" if settings.APP_DEBUG else "WARNING"},
        },
    }


# ============================
#   LOGGING SETUP
# ============================

def setup_logging() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_level = "DEBUG" if settings.APP_DEBUG else "INFO"
    dictConfig(build_logging_config(log_level))


# ============================
#   LOGGER GLOBAL
# ============================

logger = logging.getLogger(LOGGER_NAME)
