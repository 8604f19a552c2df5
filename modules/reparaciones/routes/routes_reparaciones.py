# modules/reparaciones/routes/routes_reparaciones.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from core.database import get_db
from core.security import require_admin_dep

from modules.reparaciones.services.services_reparaciones import (
    ReparacionDomainError,
    ReparacionNotFound,
    ReparacionStorageError,
    actualizar_reparacion,
    crear_reparacion,
    listar_reparaciones,
    obtener_reparacion,
    registrar_avance,
)

router = APIRouter(
    prefix="/repairs",
    tags=["reparaciones"],
    dependencies=[Depends(require_admin_dep)],
)


# ============================
#   SCHEMAS
# ============================

class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ClienteInline(_Schema):
    nombre: str
    documento: str | None = None
    telefono: str | None = None
    email: str | None = None
    direccion: str | None = None
    notas: str | None = None


class _EquipoBase(_Schema):
    dispositivo_tipo: str | None = Field(None, alias="dispositivoTipo")
    marca: str | None = None
    modelo: str | None = None
    referencia: str | None = None
    color: str | None = None
    serie: str | None = None
    diagnostico: str | None = None
    accesorios: str | None = None
    estado: str | None = None
    costo_estimado: float | None = Field(None, alias="costoEstimado")
    costo_final: float | None = Field(None, alias="costoFinal")
    responsable: str | None = None
    notas: str | None = None


class ReparacionCreateIn(_EquipoBase):
    cliente_id: int | None = Field(None, alias="clientId")
    cliente: ClienteInline | None = Field(None, alias="client")
    motivo_ingreso: str = Field(alias="motivoIngreso")


class ReparacionUpdateIn(_EquipoBase):
    motivo_ingreso: str | None = Field(None, alias="motivoIngreso")


class AvanceIn(_Schema):
    estado: str
    comentario: str | None = None
    registrado_por: str | None = Field(None, alias="registradoPor")


def _http_error(e: ReparacionDomainError) -> HTTPException:
    if isinstance(e, ReparacionNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, ReparacionStorageError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"message": e.message})


# ============================
#   ENDPOINTS
# ============================

@router.get("")
async def reparaciones_listar(
    q: str | None = Query(None),
    estado: str | None = Query(None),
    db: Session = Depends(get_db),
):
    return listar_reparaciones(db, q=q, estado=estado)


@router.get("/{repair_id}")
async def reparaciones_detalle(repair_id: int, db: Session = Depends(get_db)):
    try:
        return obtener_reparacion(db, repair_id)
    except ReparacionDomainError as e:
        raise _http_error(e)


@router.post("", status_code=201)
async def reparaciones_crear(payload: ReparacionCreateIn, db: Session = Depends(get_db)):
    try:
        return crear_reparacion(db, data=payload.model_dump())
    except ReparacionDomainError as e:
        raise _http_error(e)


@router.patch("/{repair_id}")
async def reparaciones_actualizar(
    repair_id: int,
    payload: ReparacionUpdateIn,
    db: Session = Depends(get_db),
):
    try:
        return actualizar_reparacion(
            db,
            repair_id=repair_id,
            data=payload.model_dump(exclude_unset=True),
        )
    except ReparacionDomainError as e:
        raise _http_error(e)


@router.post("/{repair_id}/updates", status_code=201)
async def reparaciones_avance(
    repair_id: int,
    payload: AvanceIn,
    db: Session = Depends(get_db),
):
    try:
        return registrar_avance(
            db,
            repair_id=repair_id,
            estado=payload.estado,
            comentario=payload.comentario,
            registrado_por=payload.registrado_por,
        )
    except ReparacionDomainError as e:
        raise _http_error(e)
