# modules/facturacion/routes/routes_facturacion.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from core.database import get_db
from core.security import require_admin_dep

from modules.facturacion.services.services_facturacion import (
    FacturacionDomainError,
    FacturacionStorageError,
    FacturaNotFound,
    actualizar_estado_factura,
    crear_factura,
    listar_facturas,
    obtener_factura,
)

router = APIRouter(
    prefix="/invoices",
    tags=["facturacion"],
    dependencies=[Depends(require_admin_dep)],
)


# ============================
#   SCHEMAS
# ============================

class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FacturaItemIn(_Schema):
    descripcion: str
    inventario_item_id: int | None = Field(None, alias="inventarioItemId")
    cantidad: int
    precio_unitario: float = Field(alias="precioUnitario")
    impuesto_porcentaje: float = Field(0, alias="impuestoPorcentaje")
    descuento_porcentaje: float = Field(0, alias="descuentoPorcentaje")


class FacturaCreateIn(_Schema):
    tipo: str | None = None
    cliente_nombre: str = Field(alias="clienteNombre")
    cliente_identificacion: str | None = Field(None, alias="clienteIdentificacion")
    cliente_telefono: str | None = Field(None, alias="clienteTelefono")
    cliente_email: str | None = Field(None, alias="clienteEmail")
    cliente_direccion: str | None = Field(None, alias="clienteDireccion")
    notas: str | None = None
    anticipo: float = 0
    items: list[FacturaItemIn] = Field(default_factory=list)


class EstadoFacturaIn(_Schema):
    estado: str
    notas: str | None = None
    anticipo: float | None = None


def _http_error(e: FacturacionDomainError) -> HTTPException:
    if isinstance(e, FacturaNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, FacturacionStorageError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"message": e.message})


# ============================
#   ENDPOINTS
# ============================

@router.get("")
async def facturas_listar(
    q: str | None = Query(None),
    estado: str | None = Query(None),
    tipo: str | None = Query(None),
    db: Session = Depends(get_db),
):
    return listar_facturas(db, q=q, estado=estado, tipo=tipo)


@router.get("/{factura_id}")
async def facturas_detalle(factura_id: int, db: Session = Depends(get_db)):
    try:
        return obtener_factura(db, factura_id)
    except FacturacionDomainError as e:
        raise _http_error(e)


@router.post("", status_code=201)
async def facturas_crear(payload: FacturaCreateIn, db: Session = Depends(get_db)):
    try:
        return crear_factura(db, data=payload.model_dump())
    except FacturacionDomainError as e:
        raise _http_error(e)


@router.patch("/{factura_id}/status")
async def facturas_estado(
    factura_id: int,
    payload: EstadoFacturaIn,
    db: Session = Depends(get_db),
):
    try:
        return actualizar_estado_factura(
            db,
            factura_id=factura_id,
            estado=payload.estado,
            notas=payload.notas,
            anticipo=payload.anticipo,
        )
    except FacturacionDomainError as e:
        raise _http_error(e)
