# modules/devoluciones/services/services_devoluciones.py
"""
Service de devoluciones: alta, consultas y registros append-only.

Los cambios de estado y el cierre viven en services_devoluciones_estados.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from core.models import Cliente, InventarioItem, Proveedor
from core.models.devoluciones import (
    Devolucion,
    DevolucionAdjunto,
    DevolucionHistorial,
    DevolucionMovimiento,
)
from core.models.enums import AlertaSla, DevolucionEstado
from core.models.time import ensure_utc, utcnow
from core.services.services_secuencias import siguiente_codigo_devolucion

from modules.devoluciones.services.services_devoluciones_core import (
    ACTOR_SISTEMA,
    LIMITE_LISTADO,
    VENTANA_ALERTA_SLA,
    DevolucionNotFound,
    DevolucionValidationError,
    NothingToUpdate,
    calcular_alerta_sla,
    normalizar_estado,
    obtener_devolucion_segura,
    parse_datetime,
    parse_id,
    requerir_texto,
    serializar_adjunto,
    serializar_devolucion,
    serializar_historial,
    serializar_movimiento,
    strip_or_none,
    transaccion,
    validar_url,
)
from modules.devoluciones.services.services_devoluciones_logging import (
    log_devolucion_event,
)


CAMPOS_EDITABLES = ("motivo", "diagnostico", "proveedor_id", "cliente_id", "sla_proveedor")


# ============================================================
# HELPERS
# ============================================================

def _validar_movimiento(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DevolucionValidationError("Debes registrar el primer movimiento de custodia.")

    return {
        "tipo": requerir_texto(data.get("tipo"), "tipo", min_len=2),
        "entregado_por": requerir_texto(data.get("entregado_por"), "entregado_por"),
        "recibido_por": requerir_texto(data.get("recibido_por"), "recibido_por"),
        "fecha": parse_datetime(data.get("fecha"), "fecha"),
        "notas": strip_or_none(data.get("notas")),
    }


def _nuevo_movimiento(devolucion_id: int, mov: dict[str, Any]) -> DevolucionMovimiento:
    return DevolucionMovimiento(
        devolucion_id=devolucion_id,
        tipo=mov["tipo"],
        entregado_por=mov["entregado_por"],
        recibido_por=mov["recibido_por"],
        fecha=mov["fecha"] or utcnow(),
        notas=mov["notas"],
    )


def _validar_referencias(
    db: Session,
    *,
    inventario_item_id: int | None = None,
    proveedor_id: int | None = None,
    cliente_id: int | None = None,
) -> None:
    if inventario_item_id is not None and db.get(InventarioItem, inventario_item_id) is None:
        raise DevolucionNotFound("Repuesto de inventario no encontrado.")
    if proveedor_id is not None and db.get(Proveedor, proveedor_id) is None:
        raise DevolucionNotFound("Proveedor no encontrado.")
    if cliente_id is not None and db.get(Cliente, cliente_id) is None:
        raise DevolucionNotFound("Cliente no encontrado.")


def normalizar_alerta(alerta: str | None) -> str | None:
    a = strip_or_none(alerta)
    if a is None:
        return None
    validas = {x.value for x in AlertaSla}
    if a.lower() not in validas:
        raise DevolucionValidationError(f"Alerta SLA inválida: '{alerta}'.")
    return a.lower()


def construir_consulta(
    *,
    estado: str | None = None,
    q: str | None = None,
    desde: datetime | None = None,
    hasta: datetime | None = None,
):
    """
    SELECT base compartido por listado y reporte.
    Orden: más reciente primero.
    """
    stmt = (
        select(Devolucion)
        .outerjoin(Proveedor, Proveedor.id == Devolucion.proveedor_id)
        .outerjoin(Cliente, Cliente.id == Devolucion.cliente_id)
        .options(selectinload(Devolucion.proveedor), selectinload(Devolucion.cliente))
    )

    if strip_or_none(estado):
        stmt = stmt.where(Devolucion.estado == normalizar_estado(estado))

    if desde is not None:
        stmt = stmt.where(Devolucion.created_at >= desde)
    if hasta is not None:
        stmt = stmt.where(Devolucion.created_at <= hasta)

    texto = strip_or_none(q)
    if texto:
        like = f"%{texto.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Devolucion.codigo).like(like),
                func.lower(func.coalesce(Proveedor.nombre, "")).like(like),
                func.lower(func.coalesce(Cliente.nombre, "")).like(like),
            )
        )

    return stmt.order_by(Devolucion.created_at.desc(), Devolucion.id.desc())


def filtrar_por_alerta(
    filas: list[Devolucion],
    alerta: str | None,
    *,
    now: datetime | None = None,
) -> list[Devolucion]:
    if alerta is None:
        return filas
    now = now or utcnow()
    return [d for d in filas if calcular_alerta_sla(d.sla_proveedor, now) == alerta]


# ============================================================
# CONSULTAS
# ============================================================

def listar_devoluciones(
    db: Session,
    *,
    estado: str | None = None,
    alerta: str | None = None,
    q: str | None = None,
    limit: int = LIMITE_LISTADO,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """
    Filtros: estado exacto, bucket de alerta SLA, texto libre
    (código / proveedor / cliente, sin distinguir mayúsculas).
    """
    alerta = normalizar_alerta(alerta)
    limit = max(1, min(int(limit), LIMITE_LISTADO))
    now = ensure_utc(now) or utcnow()

    stmt = construir_consulta(estado=estado, q=q)

    # el bucket exacto se calcula en aplicación y el tope se aplica después de filtrar;
    # en SQL solo se descartan casos sin SLA o con SLA fuera de la ventana de alerta
    if alerta is None:
        stmt = stmt.limit(limit)
    else:
        stmt = stmt.where(
            Devolucion.sla_proveedor.is_not(None),
            Devolucion.sla_proveedor <= now + VENTANA_ALERTA_SLA,
        )

    filas = list(db.execute(stmt).scalars().all())
    filas = filtrar_por_alerta(filas, alerta, now=now)[:limit]

    return [serializar_devolucion(d, now=now) for d in filas]


def listar_movimientos(db: Session, devolucion_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(DevolucionMovimiento)
        .where(DevolucionMovimiento.devolucion_id == devolucion_id)
        .order_by(DevolucionMovimiento.fecha.asc(), DevolucionMovimiento.id.asc())
    )
    return [serializar_movimiento(m) for m in db.execute(stmt).scalars().all()]


def listar_historial(db: Session, devolucion_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(DevolucionHistorial)
        .where(DevolucionHistorial.devolucion_id == devolucion_id)
        .order_by(DevolucionHistorial.created_at.desc(), DevolucionHistorial.id.desc())
    )
    return [serializar_historial(h) for h in db.execute(stmt).scalars().all()]


def listar_adjuntos(db: Session, devolucion_id: int) -> list[dict[str, Any]]:
    stmt = (
        select(DevolucionAdjunto)
        .where(DevolucionAdjunto.devolucion_id == devolucion_id)
        .order_by(DevolucionAdjunto.created_at.desc(), DevolucionAdjunto.id.desc())
    )
    return [serializar_adjunto(a) for a in db.execute(stmt).scalars().all()]


def obtener_detalle(
    db: Session,
    devolucion_id: int,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Caso + movimientos (cronológico) + historial y adjuntos (más reciente primero).
    Lanza DevolucionNotFound si no existe.
    """
    d = obtener_devolucion_segura(db, devolucion_id)

    detalle = serializar_devolucion(d, now=now)
    detalle["movimientos"] = listar_movimientos(db, d.id)
    detalle["historial"] = listar_historial(db, d.id)
    detalle["adjuntos"] = listar_adjuntos(db, d.id)
    return detalle


def resumen_devoluciones(db: Session, *, now: datetime | None = None) -> dict[str, Any]:
    """
    Contadores para dashboard: por estado y por alerta SLA (solo casos abiertos).
    """
    now = now or utcnow()

    por_estado = {e.value: 0 for e in DevolucionEstado}
    rows = db.execute(
        select(Devolucion.estado, func.count(Devolucion.id)).group_by(Devolucion.estado)
    ).all()
    for estado, total in rows:
        por_estado[normalizar_estado(estado).value] = int(total)

    por_alerta = {a.value: 0 for a in AlertaSla}
    abiertas = db.execute(
        select(Devolucion.sla_proveedor)
        .where(Devolucion.estado != DevolucionEstado.CERRADA)
        .where(Devolucion.sla_proveedor.is_not(None))
    ).scalars().all()
    for sla in abiertas:
        alerta = calcular_alerta_sla(sla, now)
        if alerta:
            por_alerta[alerta] += 1

    return {
        "total": sum(por_estado.values()),
        "abiertas": sum(v for k, v in por_estado.items() if k != DevolucionEstado.CERRADA.value),
        "por_estado": por_estado,
        "por_alerta": por_alerta,
    }


# ============================================================
# ALTA
# ============================================================

def crear_devolucion(db: Session, *, data: dict[str, Any]) -> dict[str, Any]:
    """
    Alta de devolución en una sola transacción:
      código (secuencia) + caso + primer movimiento + historial inicial.

    Reglas:
    - motivo >= 3 caracteres
    - exactamente uno de: inventario_item_id | producto_nombre
    - primer movimiento obligatorio (tipo, entregado_por, recibido_por)
    """
    motivo = requerir_texto(data.get("motivo"), "motivo", min_len=3)

    inventario_item_id = parse_id(data.get("inventario_item_id"), "inventario_item_id")
    producto_nombre = strip_or_none(data.get("producto_nombre"))

    if inventario_item_id is None and producto_nombre is None:
        raise DevolucionValidationError("Debe indicar el repuesto vinculado o un nombre de producto.")
    if inventario_item_id is not None and producto_nombre is not None:
        raise DevolucionValidationError(
            "Indica solo uno: repuesto vinculado o nombre de producto, no ambos."
        )
    if producto_nombre is not None and len(producto_nombre) < 2:
        raise DevolucionValidationError("El nombre de producto debe tener al menos 2 caracteres.")

    proveedor_id = parse_id(data.get("proveedor_id"), "proveedor_id")
    cliente_id = parse_id(data.get("cliente_id"), "cliente_id")
    sla = parse_datetime(data.get("sla_proveedor"), "sla_proveedor")
    movimiento = _validar_movimiento(data.get("primer_movimiento"))

    _validar_referencias(
        db,
        inventario_item_id=inventario_item_id,
        proveedor_id=proveedor_id,
        cliente_id=cliente_id,
    )

    with transaccion(db, evento="crear_devolucion_failed"):
        codigo = siguiente_codigo_devolucion(db)

        d = Devolucion(
            codigo=codigo,
            inventario_item_id=inventario_item_id,
            producto_nombre=producto_nombre,
            proveedor_id=proveedor_id,
            cliente_id=cliente_id,
            motivo=motivo,
            diagnostico=strip_or_none(data.get("diagnostico")),
            sla_proveedor=sla,
            estado=DevolucionEstado.REPORTADA,
        )
        db.add(d)
        db.flush()
        devolucion_id = d.id

        db.add(_nuevo_movimiento(devolucion_id, movimiento))
        db.add(
            DevolucionHistorial(
                devolucion_id=devolucion_id,
                estado=DevolucionEstado.REPORTADA.value,
                comentario=movimiento["notas"] or "Ingreso reportado",
                actor=ACTOR_SISTEMA,
            )
        )

    log_devolucion_event(
        "devolucion_creada",
        devolucion_id=devolucion_id,
        codigo=codigo,
        movimiento_tipo=movimiento["tipo"],
    )
    return obtener_detalle(db, devolucion_id)


# ============================================================
# REGISTROS APPEND-ONLY
# ============================================================

def registrar_movimiento(
    db: Session,
    *,
    devolucion_id: int,
    data: dict[str, Any],
) -> list[dict[str, Any]]:
    """Agrega un movimiento de custodia. No cambia el estado del caso."""
    movimiento = _validar_movimiento(data)
    d = obtener_devolucion_segura(db, devolucion_id)

    with transaccion(db, evento="movimiento_failed", devolucion_id=d.id):
        db.add(_nuevo_movimiento(d.id, movimiento))

    log_devolucion_event("movimiento_registrado", devolucion_id=devolucion_id, tipo=movimiento["tipo"])
    return listar_movimientos(db, devolucion_id)


def agregar_comentario(
    db: Session,
    *,
    devolucion_id: int,
    comentario: str,
) -> list[dict[str, Any]]:
    """Comentario manual en el historial, con el estado actual del caso."""
    texto = requerir_texto(comentario, "comentario")
    d = obtener_devolucion_segura(db, devolucion_id)

    with transaccion(db, evento="comentario_failed", devolucion_id=d.id):
        db.add(
            DevolucionHistorial(
                devolucion_id=d.id,
                estado=normalizar_estado(d.estado).value,
                comentario=texto,
                actor=ACTOR_SISTEMA,
            )
        )

    return listar_historial(db, devolucion_id)


def agregar_adjunto(
    db: Session,
    *,
    devolucion_id: int,
    data: dict[str, Any],
) -> list[dict[str, Any]]:
    tipo = requerir_texto(data.get("tipo"), "tipo")
    url = validar_url(data.get("url"))
    subido_por = requerir_texto(data.get("subido_por"), "subido_por")
    nombre = strip_or_none(data.get("nombre"))

    d = obtener_devolucion_segura(db, devolucion_id)

    with transaccion(db, evento="adjunto_failed", devolucion_id=d.id):
        db.add(
            DevolucionAdjunto(
                devolucion_id=d.id,
                tipo=tipo,
                url=url,
                nombre=nombre,
                subido_por=subido_por,
            )
        )

    log_devolucion_event("adjunto_agregado", devolucion_id=devolucion_id, tipo=tipo)
    return listar_adjuntos(db, devolucion_id)


# ============================================================
# EDICIÓN DE CAMPOS DESCRIPTIVOS
# ============================================================

def actualizar_devolucion(
    db: Session,
    *,
    devolucion_id: int,
    data: dict[str, Any],
) -> dict[str, Any]:
    """
    Patch de campos descriptivos (nunca el estado).
    Campos ausentes o None se dejan intactos; patch vacío => NothingToUpdate.
    """
    presentes = {k: data[k] for k in CAMPOS_EDITABLES if data.get(k) is not None}
    if not presentes:
        raise NothingToUpdate("Sin cambios para actualizar.")

    cambios: dict[str, Any] = {}
    if "motivo" in presentes:
        cambios["motivo"] = requerir_texto(presentes["motivo"], "motivo", min_len=3)
    if "diagnostico" in presentes:
        cambios["diagnostico"] = strip_or_none(presentes["diagnostico"])
    if "proveedor_id" in presentes:
        cambios["proveedor_id"] = parse_id(presentes["proveedor_id"], "proveedor_id")
    if "cliente_id" in presentes:
        cambios["cliente_id"] = parse_id(presentes["cliente_id"], "cliente_id")
    if "sla_proveedor" in presentes:
        cambios["sla_proveedor"] = parse_datetime(presentes["sla_proveedor"], "sla_proveedor")

    d = obtener_devolucion_segura(db, devolucion_id)
    _validar_referencias(
        db,
        proveedor_id=cambios.get("proveedor_id"),
        cliente_id=cambios.get("cliente_id"),
    )

    with transaccion(db, evento="actualizar_failed", devolucion_id=d.id):
        for campo, valor in cambios.items():
            setattr(d, campo, valor)
        d.updated_at = utcnow()

    log_devolucion_event("devolucion_actualizada", devolucion_id=devolucion_id, campos=sorted(cambios))
    return obtener_detalle(db, devolucion_id)
