# modules/productos/routes/routes_productos.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from core.database import get_db
from core.security import require_admin_dep

from modules.productos.services.services_productos import (
    ProductoDomainError,
    ProductoNotFound,
    ProductoStorageError,
    crear_producto,
    eliminar_producto,
    listar_productos,
)

# GET es público (vitrina); escritura solo admin
router = APIRouter(prefix="/products", tags=["productos"])


class ProductoIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nombre: str
    descripcion: str | None = None
    categoria: str
    precio: float
    imagen_url: str | None = Field(None, alias="imagenUrl")


def _http_error(e: ProductoDomainError) -> HTTPException:
    if isinstance(e, ProductoNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, ProductoStorageError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"message": e.message})


@router.get("")
async def productos_listar(db: Session = Depends(get_db)):
    return listar_productos(db)


@router.post("", status_code=201, dependencies=[Depends(require_admin_dep)])
async def productos_crear(payload: ProductoIn, db: Session = Depends(get_db)):
    try:
        return crear_producto(db, data=payload.model_dump())
    except ProductoDomainError as e:
        raise _http_error(e)


@router.delete("/{producto_id}", status_code=204, dependencies=[Depends(require_admin_dep)])
async def productos_eliminar(producto_id: int, db: Session = Depends(get_db)):
    try:
        eliminar_producto(db, producto_id=producto_id)
    except ProductoDomainError as e:
        raise _http_error(e)
    return Response(status_code=204)
