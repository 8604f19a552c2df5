# core/services/services_secuencias.py
"""
Secuencias – códigos legibles (DEV-YYMMDD-NNNN, RPR-YYYYMMDD-NNNN, DCYYMMDD-NNNN)

- El contador vive en la tabla `secuencias` (una fila por nombre).
- Participa en la transacción del caller: si la transacción hace rollback,
  el número no se consume.
- Bloqueo de fila (FOR UPDATE) en motores que lo soportan.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.models.secuencias import Secuencia
from core.models.time import utcnow


SEQ_DEVOLUCIONES = "devolucion_codigo_seq"
SEQ_REPARACIONES = "repair_ticket_seq"
SEQ_FACTURAS = "invoice_consecutivo_seq"


def siguiente_valor(db: Session, nombre: str) -> int:
    stmt = select(Secuencia).where(Secuencia.nombre == nombre).with_for_update()
    seq = db.execute(stmt).scalar_one_or_none()

    if seq is None:
        seq = Secuencia(nombre=nombre, valor=0)
        db.add(seq)

    seq.valor = int(seq.valor or 0) + 1
    db.flush()
    return int(seq.valor)


def formatear_codigo(
    prefijo: str,
    valor: int,
    *,
    fecha: datetime,
    formato_fecha: str,
    separador: str = "-",
) -> str:
    # mínimo 4 dígitos; sobre 9999 se mantiene el número completo
    return f"{prefijo}{separador}{fecha.strftime(formato_fecha)}-{int(valor):04d}"


def siguiente_codigo_devolucion(db: Session, *, fecha: datetime | None = None) -> str:
    valor = siguiente_valor(db, SEQ_DEVOLUCIONES)
    return formatear_codigo("DEV", valor, fecha=fecha or utcnow(), formato_fecha="%y%m%d")


def siguiente_codigo_reparacion(db: Session, *, fecha: datetime | None = None) -> str:
    valor = siguiente_valor(db, SEQ_REPARACIONES)
    return formatear_codigo("RPR", valor, fecha=fecha or utcnow(), formato_fecha="%Y%m%d")


def siguiente_consecutivo_factura(db: Session, *, fecha: datetime | None = None) -> str:
    valor = siguiente_valor(db, SEQ_FACTURAS)
    return formatear_codigo("DC", valor, fecha=fecha or utcnow(), formato_fecha="%y%m%d", separador="")
