# modules/devoluciones/services/services_devoluciones_logging.py
"""
Logging estructurado – Módulo Devoluciones

✔ Una línea JSON por evento (canal taller.devoluciones -> logs/devoluciones.log)
✔ Correlación con el request HTTP (request_id)
✔ Seguro ante payloads no serializables
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from core.logging_config import AUDIT_LOGGER_NAME
from core.middleware.request_context import current_request_id
from core.models.time import utcnow


devoluciones_logger = logging.getLogger(AUDIT_LOGGER_NAME)

TipoLog = Literal["event", "error", "audit"]


def _safe_json(payload: dict[str, Any]) -> str:
    # logging nunca debe romper el flujo del caso
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return json.dumps({k: str(v) for k, v in payload.items()}, ensure_ascii=False)


def _emit(level: int, tipo: TipoLog, event: str, devolucion_id: int | None, extra: dict[str, Any]) -> None:
    payload = {
        "ts": utcnow().isoformat(),
        "event": f"devoluciones.{event}",
        "type": tipo,
        "devolucion_id": devolucion_id,
        "request_id": current_request_id(),
        **extra,
    }
    devoluciones_logger.log(level, _safe_json(payload))


def log_devolucion_event(event: str, *, devolucion_id: int | None = None, **extra: Any) -> None:
    """devolucion_creada, movimiento_registrado, adjunto_agregado, ..."""
    _emit(logging.INFO, "event", event, devolucion_id, extra)


def log_devolucion_error(
    event: str,
    *,
    devolucion_id: int | None = None,
    error: Exception | None = None,
    **extra: Any,
) -> None:
    if error is not None:
        extra.setdefault("error_type", type(error).__name__)
        extra.setdefault("error_message", getattr(error, "message", None) or str(error))
    _emit(logging.ERROR, "error", event, devolucion_id, extra)


def log_devolucion_audit(
    event: str,
    *,
    devolucion_id: int,
    usuario: str | None = None,
    **extra: Any,
) -> None:
    """Cambios de estado y cierres (quién, desde, hacia)."""
    _emit(logging.INFO, "audit", event, devolucion_id, {"usuario": usuario, **extra})
