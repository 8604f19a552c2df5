# modules/catalogo/routes/routes_catalogo.py
"""
Rutas de catálogo – clientes, proveedores e inventario de repuestos.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from core.database import get_db
from core.security import require_admin_dep

from modules.catalogo.services.services_catalogo_core import CatalogoDomainError
from modules.catalogo.services.services_clientes import (
    crear_cliente,
    listar_clientes,
    obtener_cliente,
)
from modules.catalogo.services.services_proveedores import (
    crear_proveedor,
    listar_proveedores,
)
from modules.catalogo.services.services_inventario import (
    actualizar_item,
    alertas_stock,
    crear_item,
    eliminar_item,
    listar_items,
)

from .catalogo_common import ClienteIn, ItemIn, ItemUpdateIn, ProveedorIn, http_error


_deps = [Depends(require_admin_dep)]

clientes_router = APIRouter(prefix="/clients", tags=["clientes"], dependencies=_deps)
proveedores_router = APIRouter(prefix="/providers", tags=["proveedores"], dependencies=_deps)
inventario_router = APIRouter(prefix="/inventory", tags=["inventario"], dependencies=_deps)


# ============================
#   CLIENTES
# ============================

@clientes_router.get("")
async def clientes_listar(q: str | None = Query(None), db: Session = Depends(get_db)):
    return listar_clientes(db, q=q)


@clientes_router.get("/{cliente_id}")
async def clientes_detalle(cliente_id: int, db: Session = Depends(get_db)):
    try:
        return obtener_cliente(db, cliente_id)
    except CatalogoDomainError as e:
        raise http_error(e)


@clientes_router.post("", status_code=201)
async def clientes_crear(payload: ClienteIn, db: Session = Depends(get_db)):
    try:
        return crear_cliente(db, data=payload.model_dump())
    except CatalogoDomainError as e:
        raise http_error(e)


# ============================
#   PROVEEDORES
# ============================

@proveedores_router.get("")
async def proveedores_listar(q: str | None = Query(None), db: Session = Depends(get_db)):
    return listar_proveedores(db, q=q)


@proveedores_router.post("", status_code=201)
async def proveedores_crear(payload: ProveedorIn, db: Session = Depends(get_db)):
    try:
        return crear_proveedor(db, data=payload.model_dump())
    except CatalogoDomainError as e:
        raise http_error(e)


# ============================
#   INVENTARIO
# ============================

@inventario_router.get("")
async def inventario_listar(
    q: str | None = Query(None),
    estado: str | None = Query(None),
    db: Session = Depends(get_db),
):
    return listar_items(db, q=q, estado=estado)


@inventario_router.get("/alerts")
async def inventario_alertas(db: Session = Depends(get_db)):
    return alertas_stock(db)


@inventario_router.post("", status_code=201)
async def inventario_crear(payload: ItemIn, db: Session = Depends(get_db)):
    try:
        return crear_item(db, data=payload.model_dump())
    except CatalogoDomainError as e:
        raise http_error(e)


@inventario_router.patch("/{item_id}")
async def inventario_actualizar(item_id: int, payload: ItemUpdateIn, db: Session = Depends(get_db)):
    try:
        return actualizar_item(db, item_id=item_id, data=payload.model_dump(exclude_unset=True))
    except CatalogoDomainError as e:
        raise http_error(e)


@inventario_router.delete("/{item_id}", status_code=204)
async def inventario_eliminar(item_id: int, db: Session = Depends(get_db)):
    try:
        eliminar_item(db, item_id=item_id)
    except CatalogoDomainError as e:
        raise http_error(e)
    return Response(status_code=204)
