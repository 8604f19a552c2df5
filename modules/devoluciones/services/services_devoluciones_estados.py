# modules/devoluciones/services/services_devoluciones_estados.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.models.devoluciones import DevolucionHistorial, DevolucionMovimiento
from core.models.enums import DevolucionEstado
from core.models.time import utcnow

from modules.devoluciones.services.services_devoluciones_core import (
    ACTOR_SISTEMA,
    MOVIMIENTO_ENTREGA_FINAL,
    AlreadyClosed,
    DevolucionDomainError,
    MissingFinalMovement,
    MissingSla,
    StockAdjustmentRequired,
    normalizar_estado,
    obtener_devolucion_segura,
    parse_datetime,
    requerir_texto,
    strip_or_none,
    transaccion,
    validar_transicion,
)
from modules.devoluciones.services.services_devoluciones import obtener_detalle
from modules.devoluciones.services.services_devoluciones_logging import (
    log_devolucion_audit,
    log_devolucion_error,
)


# ============================
# WORKFLOW / ESTADOS
# ============================

def cambiar_estado(
    db: Session,
    *,
    devolucion_id: int,
    estado: str | DevolucionEstado,
    comentario: str | None = None,
    sla_proveedor: datetime | str | None = None,
) -> dict[str, Any]:
    """
    Aplica una transición del grafo de estados.

    - Estado destino debe estar permitido desde el actual (InvalidTransition)
    - entregada_proveedor exige SLA (existente o nuevo) (MissingSla)
    - Estado + SLA + historial en un solo commit; ante error, rollback completo
    """
    destino = normalizar_estado(estado)
    sla_nuevo = parse_datetime(sla_proveedor, "sla_proveedor")
    texto = strip_or_none(comentario)

    with transaccion(db, evento="cambiar_estado_failed", devolucion_id=devolucion_id):
        try:
            d = obtener_devolucion_segura(db, devolucion_id, for_update=True)
            actual = normalizar_estado(d.estado)

            validar_transicion(actual, destino)

            if destino == DevolucionEstado.ENTREGADA_PROVEEDOR and not (sla_nuevo or d.sla_proveedor):
                raise MissingSla("Debes definir un SLA cuando se entrega al proveedor.")
        except DevolucionDomainError as e:
            log_devolucion_error(
                "cambiar_estado_rechazado",
                devolucion_id=devolucion_id,
                error=e,
                destino=destino.value,
            )
            raise

        d.estado = destino
        if sla_nuevo is not None:
            d.sla_proveedor = sla_nuevo
        d.updated_at = utcnow()

        db.add(
            DevolucionHistorial(
                devolucion_id=d.id,
                estado=destino.value,
                comentario=texto or f"Estado actualizado a {destino.value}",
                actor=ACTOR_SISTEMA,
                metadatos={"desde": actual.value, "hacia": destino.value},
            )
        )

    log_devolucion_audit(
        "cambio_estado",
        devolucion_id=devolucion_id,
        desde=actual.value,
        hacia=destino.value,
    )
    return obtener_detalle(db, devolucion_id)


def _tiene_entrega_final(db: Session, devolucion_id: int) -> bool:
    stmt = (
        select(DevolucionMovimiento.id)
        .where(DevolucionMovimiento.devolucion_id == devolucion_id)
        .where(DevolucionMovimiento.tipo == MOVIMIENTO_ENTREGA_FINAL)
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def cerrar_devolucion(
    db: Session,
    *,
    devolucion_id: int,
    resultado_final: str,
    ajuste_stock: bool,
    cerrada_por: str,
    ajuste_notas: str | None = None,
) -> dict[str, Any]:
    """
    Cierre del caso.

    Orden de reglas:
      1) no cerrada (AlreadyClosed)
      2) ajuste de stock confirmado (StockAdjustmentRequired)
      3) existe movimiento entrega_final (MissingFinalMovement)
      4) resultado_final >= 3 caracteres, cerrada_por obligatorio
    """
    with transaccion(db, evento="cerrar_failed", devolucion_id=devolucion_id):
        try:
            d = obtener_devolucion_segura(db, devolucion_id, for_update=True)

            if normalizar_estado(d.estado) == DevolucionEstado.CERRADA:
                raise AlreadyClosed("La devolución ya está cerrada.")

            if ajuste_stock is not True:
                raise StockAdjustmentRequired("Debes confirmar el ajuste de inventario para cerrar.")

            if not _tiene_entrega_final(db, d.id):
                raise MissingFinalMovement("Registra la entrega final antes de cerrar.")

            resultado = requerir_texto(resultado_final, "resultado_final", min_len=3)
            responsable = requerir_texto(cerrada_por, "cerrada_por")
        except DevolucionDomainError as e:
            log_devolucion_error("cierre_rechazado", devolucion_id=devolucion_id, error=e)
            raise

        estado_previo = normalizar_estado(d.estado)
        now = utcnow()

        d.estado = DevolucionEstado.CERRADA
        d.resultado_final = resultado
        d.ajuste_stock = True
        d.ajuste_notas = strip_or_none(ajuste_notas)
        d.cerrada_por = responsable
        d.cerrada_en = now
        d.updated_at = now

        db.add(
            DevolucionHistorial(
                devolucion_id=d.id,
                estado=DevolucionEstado.CERRADA.value,
                comentario=f"Cerrada por {responsable}",
                actor=ACTOR_SISTEMA,
                metadatos={
                    "desde": estado_previo.value,
                    "ajuste_stock": True,
                    "ajuste_notas": d.ajuste_notas,
                },
            )
        )

    log_devolucion_audit(
        "devolucion_cerrada",
        devolucion_id=devolucion_id,
        usuario=responsable,
        desde=estado_previo.value,
    )
    return obtener_detalle(db, devolucion_id)
