# modules/productos/services/services_productos.py
"""
Productos de la vitrina (equipos nuevos, usados y accesorios)

- Listado público, más reciente primero
- Alta y baja solo desde el panel admin
- imagen_url: URL http(s) o data URL
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.logging_config import logger
from core.models import Producto
from core.models.enums import ProductoCategoria
from core.models.time import iso_or_none


class ProductoDomainError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message


class ProductoValidationError(ProductoDomainError):
    pass


class ProductoNotFound(ProductoDomainError):
    pass


class ProductoStorageError(ProductoDomainError):
    pass


_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def _strip_or_none(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def _categoria(value: Any) -> ProductoCategoria:
    raw = (str(value) if value is not None else "").strip().lower()
    try:
        return ProductoCategoria(raw)
    except ValueError as e:
        validas = ", ".join(c.value for c in ProductoCategoria)
        raise ProductoValidationError(f"Categoría inválida: '{value}' (usa {validas}).") from e


def _precio(value: Any) -> Decimal:
    try:
        v = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ProductoValidationError("'precio' debe ser numérico.") from e
    if v <= 0:
        raise ProductoValidationError("'precio' debe ser mayor a 0.")
    return v


def _imagen(value: Any) -> str | None:
    url = _strip_or_none(value)
    if url is None:
        return None
    if not (url.startswith("data:") or _URL_RE.match(url)):
        raise ProductoValidationError("La imagen debe ser una URL válida o un data URL.")
    return url


def serializar_producto(p: Producto) -> dict[str, Any]:
    return {
        "id": p.id,
        "nombre": p.nombre,
        "descripcion": p.descripcion or "",
        "categoria": ProductoCategoria(p.categoria).value,
        "precio": float(p.precio or 0),
        "imagen_url": p.imagen_url,
        "created_at": iso_or_none(p.created_at),
    }


def listar_productos(db: Session) -> list[dict[str, Any]]:
    stmt = select(Producto).order_by(Producto.created_at.desc(), Producto.id.desc())
    return [serializar_producto(p) for p in db.execute(stmt).scalars().all()]


def crear_producto(db: Session, *, data: dict[str, Any]) -> dict[str, Any]:
    nombre = _strip_or_none(data.get("nombre"))
    if nombre is None:
        raise ProductoValidationError("El campo 'nombre' es obligatorio.")

    producto = Producto(
        nombre=nombre,
        descripcion=_strip_or_none(data.get("descripcion")) or "",
        categoria=_categoria(data.get("categoria")),
        precio=_precio(data.get("precio")),
        imagen_url=_imagen(data.get("imagen_url")),
    )

    try:
        db.add(producto)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("[PRODUCTOS] crear_producto_failed error=%s", e)
        raise ProductoStorageError("Error de persistencia al guardar el producto.") from e

    db.refresh(producto)
    logger.info("[PRODUCTOS] creado id=%s nombre=%s", producto.id, producto.nombre)
    return serializar_producto(producto)


def eliminar_producto(db: Session, *, producto_id: int) -> None:
    producto = db.get(Producto, int(producto_id))
    if producto is None:
        raise ProductoNotFound("Producto no encontrado.")

    try:
        db.delete(producto)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("[PRODUCTOS] eliminar_producto_failed id=%s error=%s", producto_id, e)
        raise ProductoStorageError("Error de persistencia al eliminar el producto.") from e

    logger.info("[PRODUCTOS] eliminado id=%s", producto_id)
