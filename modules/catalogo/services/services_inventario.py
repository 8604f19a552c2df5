# modules/catalogo/services/services_inventario.py
"""
Inventario de repuestos del taller.

✔ Listado con filtro por nombre y estado de stock ('bajo' | 'ok')
✔ Alertas: stock_actual <= stock_minimo
✔ Alta / edición parcial / baja
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from core.logging_config import logger
from core.models import Devolucion, FacturaItem, InventarioItem, Proveedor
from core.models.time import iso_or_none, utcnow

from modules.catalogo.services.services_catalogo_core import (
    CatalogoNotFound,
    CatalogoValidationError,
    entero_no_negativo,
    monto,
    monto_no_negativo,
    requerir_texto,
    strip_or_none,
    transaccion,
)


ESTADOS_STOCK = ("bajo", "ok")
CAMPOS_ITEM = (
    "nombre",
    "categoria",
    "proveedor_id",
    "stock_actual",
    "stock_minimo",
    "precio_compra",
    "precio_venta",
    "descripcion",
)


# ============================
#   HELPERS
# ============================

def serializar_item(i: InventarioItem) -> dict[str, Any]:
    proveedor = getattr(i, "proveedor", None)
    return {
        "id": i.id,
        "nombre": i.nombre,
        "categoria": i.categoria,
        "proveedor_id": i.proveedor_id,
        "proveedor_nombre": proveedor.nombre if proveedor else None,
        "stock_actual": i.stock_actual,
        "stock_minimo": i.stock_minimo,
        "stock_bajo": (i.stock_actual or 0) <= (i.stock_minimo or 0),
        "precio_compra": monto(i.precio_compra),
        "precio_venta": monto(i.precio_venta),
        "descripcion": i.descripcion,
        "updated_at": iso_or_none(i.updated_at),
    }


def _obtener_item_seguro(db: Session, item_id: int) -> InventarioItem:
    item = db.get(InventarioItem, int(item_id))
    if item is None:
        raise CatalogoNotFound("Repuesto no encontrado.")
    return item


def _validar_proveedor(db: Session, proveedor_id: Any) -> int | None:
    if proveedor_id is None:
        return None
    pid = int(proveedor_id)
    if db.get(Proveedor, pid) is None:
        raise CatalogoNotFound("Proveedor no encontrado.")
    return pid


def _normalizar_campo(db: Session, campo: str, value: Any) -> Any:
    if campo in ("nombre", "categoria"):
        return requerir_texto(value, campo)
    if campo == "proveedor_id":
        return _validar_proveedor(db, value)
    if campo in ("stock_actual", "stock_minimo"):
        return entero_no_negativo(value, campo)
    if campo in ("precio_compra", "precio_venta"):
        return monto_no_negativo(value, campo)
    return strip_or_none(value)


# ============================
#   CONSULTAS
# ============================

def listar_items(
    db: Session,
    *,
    q: str | None = None,
    estado: str | None = None,
) -> list[dict[str, Any]]:
    stmt = select(InventarioItem).options(selectinload(InventarioItem.proveedor))

    texto = strip_or_none(q)
    if texto:
        stmt = stmt.where(func.lower(InventarioItem.nombre).like(f"%{texto.lower()}%"))

    filtro = strip_or_none(estado)
    if filtro == "bajo":
        stmt = stmt.where(InventarioItem.stock_actual <= InventarioItem.stock_minimo)
    elif filtro == "ok":
        stmt = stmt.where(InventarioItem.stock_actual > InventarioItem.stock_minimo)

    stmt = stmt.order_by(InventarioItem.nombre.asc(), InventarioItem.id.asc())
    return [serializar_item(i) for i in db.execute(stmt).scalars().all()]


def alertas_stock(db: Session) -> list[dict[str, Any]]:
    stmt = (
        select(InventarioItem)
        .where(InventarioItem.stock_actual <= InventarioItem.stock_minimo)
        .order_by(InventarioItem.stock_actual.asc(), InventarioItem.id.asc())
    )
    return [
        {
            "id": i.id,
            "nombre": i.nombre,
            "stock_actual": i.stock_actual,
            "stock_minimo": i.stock_minimo,
        }
        for i in db.execute(stmt).scalars().all()
    ]


# ============================
#   ESCRITURA
# ============================

def crear_item(db: Session, *, data: dict[str, Any]) -> dict[str, Any]:
    valores = {
        campo: _normalizar_campo(db, campo, data.get(campo))
        for campo in CAMPOS_ITEM
    }
    item = InventarioItem(**valores)

    with transaccion(db, evento="crear_item_failed"):
        db.add(item)

    db.refresh(item)
    logger.info("[INVENTARIO] repuesto creado id=%s nombre=%s", item.id, item.nombre)
    return serializar_item(item)


def actualizar_item(db: Session, *, item_id: int, data: dict[str, Any]) -> dict[str, Any]:
    cambios = {k: v for k, v in (data or {}).items() if k in CAMPOS_ITEM}
    if not cambios:
        raise CatalogoValidationError("No hay datos para actualizar.")

    with transaccion(db, evento="actualizar_item_failed"):
        item = _obtener_item_seguro(db, item_id)
        for campo, value in cambios.items():
            setattr(item, campo, _normalizar_campo(db, campo, value))
        item.updated_at = utcnow()

    db.refresh(item)
    return serializar_item(item)


def eliminar_item(db: Session, *, item_id: int) -> None:
    with transaccion(db, evento="eliminar_item_failed"):
        item = _obtener_item_seguro(db, item_id)

        en_uso = db.execute(
            select(Devolucion.id).where(Devolucion.inventario_item_id == item.id).limit(1)
        ).first()
        if en_uso is not None:
            raise CatalogoValidationError("El repuesto tiene devoluciones asociadas.")

        en_factura = db.execute(
            select(FacturaItem.id).where(FacturaItem.inventario_item_id == item.id).limit(1)
        ).first()
        if en_factura is not None:
            raise CatalogoValidationError("El repuesto figura en facturas o cotizaciones.")

        db.delete(item)

    logger.info("[INVENTARIO] repuesto eliminado id=%s", item_id)
