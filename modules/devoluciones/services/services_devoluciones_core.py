# modules/devoluciones/services/services_devoluciones_core.py
"""
Core de dominio – Devoluciones a proveedor

✅ Reglas
- Errores de dominio tipados (no HTTP aquí)
- Grafo de estados fijo (estado -> destinos permitidos)
- Alerta SLA calculada en aplicación (función pura, sin BD)
- Helpers de lectura / normalización compartidos por los services
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Final, Iterator
from urllib.parse import urlparse

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.models.devoluciones import Devolucion
from core.models.enums import AlertaSla, DevolucionEstado
from core.models.time import ensure_utc, iso_or_none, utcnow

from modules.devoluciones.services.services_devoluciones_logging import log_devolucion_error


# =========================================================
# EXCEPCIONES DE DOMINIO
# =========================================================

class DevolucionDomainError(Exception):
    """Error de dominio para el módulo Devoluciones."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message


class DevolucionValidationError(DevolucionDomainError):
    """Entrada mal formada o incompleta (se rechaza antes de escribir)."""


class DevolucionNotFound(DevolucionDomainError):
    """Caso o entidad relacionada inexistente."""


class InvalidTransition(DevolucionDomainError):
    pass


class MissingSla(DevolucionDomainError):
    pass


class AlreadyClosed(DevolucionDomainError):
    pass


class MissingFinalMovement(DevolucionDomainError):
    pass


class StockAdjustmentRequired(DevolucionDomainError):
    pass


class NothingToUpdate(DevolucionDomainError):
    pass


class StorageError(DevolucionDomainError):
    """Falla de persistencia (tras rollback)."""


# =========================================================
# ESTADOS / TRANSICIONES
# =========================================================

_E = DevolucionEstado

TRANSICIONES: Final[dict[DevolucionEstado, frozenset[DevolucionEstado]]] = {
    _E.REPORTADA: frozenset({_E.REVISION_TECNICA, _E.RECHAZADA}),
    _E.REVISION_TECNICA: frozenset({
        _E.ENTREGADA_PROVEEDOR,
        _E.DEVUELTA_REEMPLAZO,
        _E.DEVUELTA_REEMBOLSO,
        _E.REPARADA_ENTREGADA,
        _E.RECHAZADA,
    }),
    _E.ENTREGADA_PROVEEDOR: frozenset({
        _E.ESPERA_REGRESO,
        _E.DEVUELTA_REEMPLAZO,
        _E.DEVUELTA_REEMBOLSO,
        _E.REPARADA_ENTREGADA,
        _E.RECHAZADA,
    }),
    _E.ESPERA_REGRESO: frozenset({
        _E.DEVUELTA_REEMPLAZO,
        _E.DEVUELTA_REEMBOLSO,
        _E.REPARADA_ENTREGADA,
        _E.RECHAZADA,
    }),
    _E.DEVUELTA_REEMPLAZO: frozenset({_E.CERRADA}),
    _E.DEVUELTA_REEMBOLSO: frozenset({_E.CERRADA}),
    _E.REPARADA_ENTREGADA: frozenset({_E.CERRADA}),
    _E.RECHAZADA: frozenset({_E.CERRADA}),
    _E.CERRADA: frozenset(),
}

ACTOR_SISTEMA: Final[str] = "sistema"
MOVIMIENTO_ENTREGA_FINAL: Final[str] = "entrega_final"
VENTANA_ALERTA_SLA: Final[timedelta] = timedelta(hours=72)
LIMITE_LISTADO: Final[int] = 200


def normalizar_estado(estado: Any) -> DevolucionEstado:
    if isinstance(estado, DevolucionEstado):
        return estado
    raw = (str(estado) if estado is not None else "").strip().lower()
    try:
        return DevolucionEstado(raw)
    except ValueError as e:
        raise DevolucionValidationError(f"Estado de devolución inválido: '{estado}'.") from e


def destinos_permitidos(actual: DevolucionEstado) -> frozenset[DevolucionEstado]:
    return TRANSICIONES.get(normalizar_estado(actual), frozenset())


def validar_transicion(actual: DevolucionEstado, destino: DevolucionEstado) -> None:
    actual = normalizar_estado(actual)
    destino = normalizar_estado(destino)
    if destino not in destinos_permitidos(actual):
        raise InvalidTransition(
            f"Transición no permitida: {actual.value} -> {destino.value}."
        )


# =========================================================
# ALERTA SLA (pura)
# =========================================================

def calcular_alerta_sla(sla: datetime | None, now: datetime | None = None) -> str | None:
    """
    Bucket de alerta para el SLA del proveedor.

    - None      -> sin SLA
    - overdue   -> now > sla
    - 24h       -> dentro de las 24h previas al SLA
    - 72h       -> dentro de las 72h previas (y no dentro de 24h)
    - None      -> SLA a más de 72h
    """
    sla = ensure_utc(sla)
    if sla is None:
        return None

    now = ensure_utc(now) or utcnow()

    if now > sla:
        return AlertaSla.VENCIDA.value
    if now >= sla - timedelta(hours=24):
        return AlertaSla.H24.value
    if now >= sla - VENTANA_ALERTA_SLA:
        return AlertaSla.H72.value
    return None


# =========================================================
# HELPERS DE NORMALIZACIÓN
# =========================================================

def strip_or_none(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def requerir_texto(value: Any, campo: str, *, min_len: int = 1) -> str:
    v = strip_or_none(value)
    if v is None or len(v) < min_len:
        if min_len > 1:
            raise DevolucionValidationError(
                f"El campo '{campo}' es obligatorio (mínimo {min_len} caracteres)."
            )
        raise DevolucionValidationError(f"El campo '{campo}' es obligatorio.")
    return v


def parse_datetime(value: Any, campo: str) -> datetime | None:
    """Acepta datetime o texto ISO-8601; devuelve UTC tz-aware."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        raw = str(value).strip().replace("Z", "+00:00")
        return ensure_utc(datetime.fromisoformat(raw))
    except ValueError as e:
        raise DevolucionValidationError(f"Fecha inválida en '{campo}': {value}") from e


def parse_id(value: Any, campo: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise DevolucionValidationError(f"Id inválido en '{campo}'.")
    try:
        v = int(value)
    except (TypeError, ValueError) as e:
        raise DevolucionValidationError(f"Id inválido en '{campo}'.") from e
    if v <= 0:
        raise DevolucionValidationError(f"Id inválido en '{campo}'.")
    return v


def validar_url(value: Any) -> str:
    url = requerir_texto(value, "url")
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc or " " in url:
        raise DevolucionValidationError(f"URL inválida: {url}")
    return url


# =========================================================
# TRANSACCIÓN
# =========================================================

@contextmanager
def transaccion(db: Session, *, evento: str, devolucion_id: int | None = None) -> Iterator[None]:
    """
    Unidad de escritura sobre la sesión del request (una conexión dedicada).
    - commit al salir sin errores
    - rollback ante cualquier error; SQLAlchemyError se re-lanza como StorageError
    """
    try:
        yield
        db.commit()
    except DevolucionDomainError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        log_devolucion_error(evento, devolucion_id=devolucion_id, error=e)
        raise StorageError("Error de persistencia al guardar la devolución.") from e
    except Exception:
        db.rollback()
        raise


# =========================================================
# LECTURA SEGURA
# =========================================================

def obtener_devolucion_segura(
    db: Session,
    devolucion_id: int,
    *,
    for_update: bool = False,
) -> Devolucion:
    """
    Devuelve la devolución o lanza DevolucionNotFound.
    for_update=True bloquea la fila dentro de la transacción en curso.
    """
    stmt = select(Devolucion).where(Devolucion.id == int(devolucion_id))
    if for_update:
        stmt = stmt.with_for_update()

    devolucion = db.execute(stmt).scalar_one_or_none()
    if devolucion is None:
        raise DevolucionNotFound("Devolución no encontrada.")
    return devolucion


# =========================================================
# PROYECCIONES (dict para API / reportes)
# =========================================================

def serializar_devolucion(d: Devolucion, *, now: datetime | None = None) -> dict[str, Any]:
    proveedor = getattr(d, "proveedor", None)
    cliente = getattr(d, "cliente", None)
    estado = normalizar_estado(d.estado)

    return {
        "id": d.id,
        "codigo": d.codigo,
        "estado": estado.value,
        "inventario_item_id": d.inventario_item_id,
        "producto_nombre": d.producto_nombre,
        "proveedor_id": d.proveedor_id,
        "proveedor_nombre": proveedor.nombre if proveedor else None,
        "cliente_id": d.cliente_id,
        "cliente_nombre": cliente.nombre if cliente else None,
        "motivo": d.motivo,
        "diagnostico": d.diagnostico,
        "sla_proveedor": iso_or_none(d.sla_proveedor),
        "sla_alerta": calcular_alerta_sla(d.sla_proveedor, now),
        "resultado_final": d.resultado_final,
        "ajuste_stock": bool(d.ajuste_stock),
        "ajuste_notas": d.ajuste_notas,
        "cerrada_por": d.cerrada_por,
        "cerrada_en": iso_or_none(d.cerrada_en),
        "created_at": iso_or_none(d.created_at),
        "updated_at": iso_or_none(d.updated_at),
    }


def serializar_movimiento(m) -> dict[str, Any]:
    return {
        "id": m.id,
        "tipo": m.tipo,
        "entregado_por": m.entregado_por,
        "recibido_por": m.recibido_por,
        "fecha": iso_or_none(m.fecha),
        "notas": m.notas,
    }


def serializar_historial(h) -> dict[str, Any]:
    return {
        "id": h.id,
        "estado": h.estado,
        "comentario": h.comentario,
        "actor": h.actor,
        "metadata": h.metadatos,
        "created_at": iso_or_none(h.created_at),
    }


def serializar_adjunto(a) -> dict[str, Any]:
    return {
        "id": a.id,
        "tipo": a.tipo,
        "url": a.url,
        "nombre": a.nombre,
        "subido_por": a.subido_por,
        "created_at": iso_or_none(a.created_at),
    }
