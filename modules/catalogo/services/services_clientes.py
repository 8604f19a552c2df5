# modules/catalogo/services/services_clientes.py
from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from core.logging_config import logger
from core.models import Cliente
from core.models.time import iso_or_none

from modules.catalogo.services.services_catalogo_core import (
    CatalogoNotFound,
    CatalogoValidationError,
    normalizar_email,
    requerir_texto,
    strip_or_none,
    transaccion,
)


LIMITE_CLIENTES = 50


def serializar_cliente(c: Cliente) -> dict[str, Any]:
    return {
        "id": c.id,
        "nombre": c.nombre,
        "documento": c.documento,
        "telefono": c.telefono,
        "email": c.email,
        "direccion": c.direccion,
        "notas": c.notas,
        "created_at": iso_or_none(c.created_at),
    }


def construir_cliente(data: dict[str, Any]) -> Cliente:
    """Valida el payload y arma el Cliente (sin agregarlo a la sesión)."""
    if not isinstance(data, dict):
        raise CatalogoValidationError("Datos de cliente inválidos.")

    return Cliente(
        nombre=requerir_texto(data.get("nombre"), "nombre"),
        documento=strip_or_none(data.get("documento")),
        telefono=strip_or_none(data.get("telefono")),
        email=normalizar_email(data.get("email")),
        direccion=strip_or_none(data.get("direccion")),
        notas=strip_or_none(data.get("notas")),
    )


def crear_cliente(db: Session, *, data: dict[str, Any]) -> dict[str, Any]:
    cliente = construir_cliente(data)

    with transaccion(db, evento="crear_cliente_failed"):
        db.add(cliente)

    db.refresh(cliente)
    logger.info("[CATALOGO] cliente creado id=%s", cliente.id)
    return serializar_cliente(cliente)


def listar_clientes(db: Session, *, q: str | None = None) -> list[dict[str, Any]]:
    stmt = select(Cliente)

    texto = strip_or_none(q)
    if texto:
        like = f"%{texto.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Cliente.nombre).like(like),
                func.lower(func.coalesce(Cliente.documento, "")).like(like),
            )
        )

    stmt = stmt.order_by(Cliente.created_at.desc(), Cliente.id.desc()).limit(LIMITE_CLIENTES)
    return [serializar_cliente(c) for c in db.execute(stmt).scalars().all()]


def obtener_cliente(db: Session, cliente_id: int) -> dict[str, Any]:
    cliente = db.get(Cliente, int(cliente_id))
    if cliente is None:
        raise CatalogoNotFound("Cliente no encontrado.")
    return serializar_cliente(cliente)
