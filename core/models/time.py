# core/models/time.py
from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Normaliza datetime a UTC tz-aware.
    - SQLite devuelve naive: se asume UTC.
    - Si viene aware, se convierte a UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_or_none(dt: datetime | None) -> str | None:
    dt = ensure_utc(dt)
    return dt.isoformat() if dt else None
