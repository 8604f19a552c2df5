# modules/catalogo/services/services_proveedores.py
from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from core.logging_config import logger
from core.models import Proveedor
from core.models.time import iso_or_none

from modules.catalogo.services.services_catalogo_core import (
    normalizar_email,
    requerir_texto,
    strip_or_none,
    transaccion,
)


def serializar_proveedor(p: Proveedor) -> dict[str, Any]:
    return {
        "id": p.id,
        "nombre": p.nombre,
        "contacto": p.contacto,
        "telefono": p.telefono,
        "email": p.email,
        "direccion": p.direccion,
        "notas": p.notas,
        "created_at": iso_or_none(p.created_at),
    }


def crear_proveedor(db: Session, *, data: dict[str, Any]) -> dict[str, Any]:
    proveedor = Proveedor(
        nombre=requerir_texto(data.get("nombre"), "nombre"),
        contacto=strip_or_none(data.get("contacto")),
        telefono=strip_or_none(data.get("telefono")),
        email=normalizar_email(data.get("email")),
        direccion=strip_or_none(data.get("direccion")),
        notas=strip_or_none(data.get("notas")),
    )

    with transaccion(db, evento="crear_proveedor_failed"):
        db.add(proveedor)

    db.refresh(proveedor)
    logger.info("[CATALOGO] proveedor creado id=%s nombre=%s", proveedor.id, proveedor.nombre)
    return serializar_proveedor(proveedor)


def listar_proveedores(db: Session, *, q: str | None = None) -> list[dict[str, Any]]:
    """Orden alfabético; q busca en nombre y contacto."""
    stmt = select(Proveedor)

    texto = strip_or_none(q)
    if texto:
        like = f"%{texto.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Proveedor.nombre).like(like),
                func.lower(func.coalesce(Proveedor.contacto, "")).like(like),
            )
        )

    stmt = stmt.order_by(Proveedor.nombre.asc(), Proveedor.id.asc())
    return [serializar_proveedor(p) for p in db.execute(stmt).scalars().all()]
