# modules/catalogo/routes/catalogo_common.py
from __future__ import annotations

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from modules.catalogo.services.services_catalogo_core import (
    CatalogoDomainError,
    CatalogoNotFound,
    CatalogoStorageError,
)


def http_error(e: CatalogoDomainError) -> HTTPException:
    if isinstance(e, CatalogoNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, CatalogoStorageError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"message": e.message})


# ============================
#   SCHEMAS
# ============================

class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ClienteIn(_Schema):
    nombre: str
    documento: str | None = None
    telefono: str | None = None
    email: str | None = None
    direccion: str | None = None
    notas: str | None = None


class ProveedorIn(_Schema):
    nombre: str
    contacto: str | None = None
    telefono: str | None = None
    email: str | None = None
    direccion: str | None = None
    notas: str | None = None


class ItemIn(_Schema):
    nombre: str
    categoria: str
    proveedor_id: int | None = Field(None, alias="proveedorId")
    stock_actual: int = Field(alias="stockActual")
    stock_minimo: int = Field(alias="stockMinimo")
    precio_compra: float = Field(alias="precioCompra")
    precio_venta: float = Field(alias="precioVenta")
    descripcion: str | None = None


class ItemUpdateIn(_Schema):
    nombre: str | None = None
    categoria: str | None = None
    proveedor_id: int | None = Field(None, alias="proveedorId")
    stock_actual: int | None = Field(None, alias="stockActual")
    stock_minimo: int | None = Field(None, alias="stockMinimo")
    precio_compra: float | None = Field(None, alias="precioCompra")
    precio_venta: float | None = Field(None, alias="precioVenta")
    descripcion: str | None = None
