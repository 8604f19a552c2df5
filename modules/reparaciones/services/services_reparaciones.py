# modules/reparaciones/services/services_reparaciones.py
"""
Reparaciones (tickets de servicio técnico)

✅ Reglas
- Alta con cliente existente o cliente nuevo en la MISMA transacción
- Código RPR-YYYYMMDD-NNNN (secuencia transaccional)
- Cada avance = cambio de estado + fila de bitácora en un solo commit
- Errores de dominio tipados (no HTTP aquí)
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.logging_config import logger
from core.models import Cliente, RepairTicket, RepairUpdate
from core.models.enums import ReparacionEstado
from core.models.time import iso_or_none, utcnow
from core.services.services_secuencias import siguiente_codigo_reparacion

from modules.catalogo.services.services_catalogo_core import CatalogoDomainError
from modules.catalogo.services.services_clientes import construir_cliente


# =========================================================
# EXCEPCIONES DE DOMINIO
# =========================================================

class ReparacionDomainError(Exception):
    """Error de dominio para el módulo Reparaciones."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message


class ReparacionValidationError(ReparacionDomainError):
    pass


class ReparacionNotFound(ReparacionDomainError):
    pass


class ReparacionStorageError(ReparacionDomainError):
    pass


LIMITE_LISTADO = 100
ACTOR_DEFECTO = "Sistema"

CAMPOS_TEXTO = (
    "dispositivo_tipo",
    "marca",
    "modelo",
    "referencia",
    "color",
    "serie",
    "motivo_ingreso",
    "diagnostico",
    "accesorios",
    "responsable",
    "notas",
)
CAMPOS_COSTO = ("costo_estimado", "costo_final")
CAMPOS_EDITABLES = CAMPOS_TEXTO + CAMPOS_COSTO + ("estado",)


# =========================================================
# HELPERS
# =========================================================

def _strip_or_none(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def _normalizar_estado(estado: Any) -> ReparacionEstado:
    if isinstance(estado, ReparacionEstado):
        return estado
    raw = (str(estado) if estado is not None else "").strip().lower()
    try:
        return ReparacionEstado(raw)
    except ValueError as e:
        raise ReparacionValidationError(f"Estado de reparación inválido: '{estado}'.") from e


def _costo(value: Any, campo: str) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        v = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ReparacionValidationError(f"'{campo}' debe ser numérico.") from e
    if v < 0:
        raise ReparacionValidationError(f"'{campo}' no puede ser negativo.")
    return v


@contextmanager
def _transaccion(db: Session, *, evento: str, repair_id: int | None = None) -> Iterator[None]:
    try:
        yield
        db.commit()
    except ReparacionDomainError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("[REPARACIONES] %s repair_id=%s error=%s", evento, repair_id, e)
        raise ReparacionStorageError("Error de persistencia al guardar la reparación.") from e
    except Exception:
        db.rollback()
        raise


def _obtener_reparacion_segura(db: Session, repair_id: int, *, for_update: bool = False) -> RepairTicket:
    stmt = select(RepairTicket).where(RepairTicket.id == int(repair_id))
    if for_update:
        stmt = stmt.with_for_update()
    ticket = db.execute(stmt).scalar_one_or_none()
    if ticket is None:
        raise ReparacionNotFound("Reparación no encontrada.")
    return ticket


# =========================================================
# PROYECCIONES
# =========================================================

def serializar_update(u: RepairUpdate) -> dict[str, Any]:
    return {
        "id": u.id,
        "repair_id": u.repair_id,
        "estado": u.estado,
        "comentario": u.comentario,
        "registrado_por": u.registrado_por,
        "created_at": iso_or_none(u.created_at),
    }


def serializar_reparacion(t: RepairTicket, *, con_updates: bool = False) -> dict[str, Any]:
    cliente = t.cliente
    out: dict[str, Any] = {
        "id": t.id,
        "codigo": t.codigo,
        "estado": _normalizar_estado(t.estado).value,
        "dispositivo_tipo": t.dispositivo_tipo,
        "marca": t.marca,
        "modelo": t.modelo,
        "referencia": t.referencia,
        "color": t.color,
        "serie": t.serie,
        "motivo_ingreso": t.motivo_ingreso,
        "diagnostico": t.diagnostico,
        "accesorios": t.accesorios,
        "costo_estimado": float(t.costo_estimado or 0),
        "costo_final": float(t.costo_final or 0),
        "responsable": t.responsable,
        "notas": t.notas,
        "created_at": iso_or_none(t.created_at),
        "updated_at": iso_or_none(t.updated_at),
        "cliente": {
            "id": cliente.id,
            "nombre": cliente.nombre,
            "documento": cliente.documento,
            "telefono": cliente.telefono,
            "email": cliente.email,
        },
    }
    if con_updates:
        out["updates"] = [serializar_update(u) for u in t.updates]
    return out


# =========================================================
# CONSULTAS
# =========================================================

def listar_reparaciones(
    db: Session,
    *,
    q: str | None = None,
    estado: str | None = None,
) -> list[dict[str, Any]]:
    stmt = (
        select(RepairTicket)
        .join(Cliente, Cliente.id == RepairTicket.cliente_id)
        .options(selectinload(RepairTicket.cliente))
    )

    texto = _strip_or_none(q)
    if texto:
        like = f"%{texto.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(RepairTicket.codigo).like(like),
                func.lower(Cliente.nombre).like(like),
            )
        )

    # estado desconocido se ignora (filtro opcional de la bandeja)
    if estado:
        try:
            stmt = stmt.where(RepairTicket.estado == _normalizar_estado(estado))
        except ReparacionValidationError:
            logger.debug("[REPARACIONES] filtro de estado ignorado: %s", estado)

    stmt = stmt.order_by(RepairTicket.created_at.desc(), RepairTicket.id.desc()).limit(LIMITE_LISTADO)
    return [serializar_reparacion(t) for t in db.execute(stmt).scalars().all()]


def obtener_reparacion(db: Session, repair_id: int) -> dict[str, Any]:
    ticket = _obtener_reparacion_segura(db, repair_id)
    return serializar_reparacion(ticket, con_updates=True)


# =========================================================
# ESCRITURA
# =========================================================

def crear_reparacion(db: Session, *, data: dict[str, Any]) -> dict[str, Any]:
    """
    data: cliente_id | cliente{...}, motivo_ingreso (obligatorio),
    datos del equipo, estado?, costos?, responsable?, notas?
    """
    motivo = _strip_or_none(data.get("motivo_ingreso"))
    if motivo is None:
        raise ReparacionValidationError("El campo 'motivo_ingreso' es obligatorio.")

    cliente_id = data.get("cliente_id")
    cliente_payload = data.get("cliente")
    if cliente_id is None and not cliente_payload:
        raise ReparacionValidationError("Debe seleccionar o crear un cliente.")

    estado = _normalizar_estado(data.get("estado") or ReparacionEstado.INGRESADO)
    costos = {campo: _costo(data.get(campo), campo) for campo in CAMPOS_COSTO}
    textos = {campo: _strip_or_none(data.get(campo)) for campo in CAMPOS_TEXTO}
    textos["motivo_ingreso"] = motivo

    nuevo_cliente = None
    if cliente_id is None:
        try:
            nuevo_cliente = construir_cliente(cliente_payload)
        except CatalogoDomainError as e:
            raise ReparacionValidationError(e.message) from e

    with _transaccion(db, evento="crear_reparacion_failed"):
        if nuevo_cliente is not None:
            db.add(nuevo_cliente)
            db.flush()
            cliente_id = nuevo_cliente.id
        elif db.get(Cliente, int(cliente_id)) is None:
            raise ReparacionNotFound("Cliente no encontrado.")

        ticket = RepairTicket(
            codigo=siguiente_codigo_reparacion(db),
            cliente_id=int(cliente_id),
            estado=estado,
            **textos,
            **costos,
        )
        db.add(ticket)
        db.flush()

        db.add(
            RepairUpdate(
                repair_id=ticket.id,
                estado=estado.value,
                comentario=textos["notas"] or "Ingreso",
                registrado_por=textos["responsable"] or ACTOR_DEFECTO,
            )
        )
        repair_id = ticket.id
        codigo = ticket.codigo

    logger.info("[REPARACIONES] creada repair_id=%s codigo=%s", repair_id, codigo)
    return obtener_reparacion(db, repair_id)


def actualizar_reparacion(db: Session, *, repair_id: int, data: dict[str, Any]) -> dict[str, Any]:
    cambios = {k: v for k, v in (data or {}).items() if k in CAMPOS_EDITABLES}
    if not cambios:
        raise ReparacionValidationError("No hay datos para actualizar.")

    with _transaccion(db, evento="actualizar_reparacion_failed", repair_id=repair_id):
        ticket = _obtener_reparacion_segura(db, repair_id, for_update=True)

        for campo, value in cambios.items():
            if campo == "estado":
                ticket.estado = _normalizar_estado(value)
            elif campo in CAMPOS_COSTO:
                setattr(ticket, campo, _costo(value, campo))
            elif campo == "motivo_ingreso":
                motivo = _strip_or_none(value)
                if motivo is None:
                    raise ReparacionValidationError("El campo 'motivo_ingreso' es obligatorio.")
                ticket.motivo_ingreso = motivo
            else:
                setattr(ticket, campo, _strip_or_none(value))

        ticket.updated_at = utcnow()

    return obtener_reparacion(db, repair_id)


def registrar_avance(
    db: Session,
    *,
    repair_id: int,
    estado: str | ReparacionEstado,
    comentario: str | None = None,
    registrado_por: str | None = None,
) -> dict[str, Any]:
    """Estado del ticket + fila de bitácora en un solo commit."""
    destino = _normalizar_estado(estado)

    with _transaccion(db, evento="registrar_avance_failed", repair_id=repair_id):
        ticket = _obtener_reparacion_segura(db, repair_id, for_update=True)
        ticket.estado = destino
        ticket.updated_at = utcnow()

        update = RepairUpdate(
            repair_id=ticket.id,
            estado=destino.value,
            comentario=_strip_or_none(comentario),
            registrado_por=_strip_or_none(registrado_por),
        )
        db.add(update)

    db.refresh(update)
    logger.info("[REPARACIONES] avance repair_id=%s estado=%s", repair_id, destino.value)
    return serializar_update(update)
