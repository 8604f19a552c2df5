# modules/devoluciones/routes/devoluciones_common.py
"""
Utilidades compartidas de las rutas de Devoluciones.

✔ Schemas de entrada (camelCase en los payloads)
✔ Traducción error de dominio -> HTTPException
"""

from __future__ import annotations

from datetime import datetime

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from modules.devoluciones.services.services_devoluciones_core import (
    DevolucionDomainError,
    DevolucionNotFound,
    StorageError,
)


# ============================
#   ERRORES
# ============================

def http_error(e: DevolucionDomainError) -> HTTPException:
    if isinstance(e, DevolucionNotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, StorageError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=code,
        detail={"message": e.message, "error": type(e).__name__},
    )


# ============================
#   SCHEMAS
# ============================

class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MovimientoIn(_Schema):
    tipo: str
    entregado_por: str = Field(alias="entregadoPor")
    recibido_por: str = Field(alias="recibidoPor")
    fecha: datetime | None = None
    notas: str | None = None


class DevolucionCreateIn(_Schema):
    inventario_item_id: int | None = Field(None, alias="inventarioItemId")
    producto_nombre: str | None = Field(None, alias="productoNombre")
    proveedor_id: int | None = Field(None, alias="proveedorId")
    cliente_id: int | None = Field(None, alias="clienteId")
    motivo: str
    diagnostico: str | None = None
    sla_proveedor: datetime | None = Field(None, alias="slaProveedor")
    primer_movimiento: MovimientoIn = Field(alias="primerMovimiento")


class DevolucionUpdateIn(_Schema):
    motivo: str | None = None
    diagnostico: str | None = None
    proveedor_id: int | None = Field(None, alias="proveedorId")
    cliente_id: int | None = Field(None, alias="clienteId")
    sla_proveedor: datetime | None = Field(None, alias="slaProveedor")


class ComentarioIn(_Schema):
    comentario: str


class EstadoIn(_Schema):
    estado: str
    comentario: str | None = None
    sla_proveedor: datetime | None = Field(None, alias="slaProveedor")


class AdjuntoIn(_Schema):
    tipo: str
    url: str
    nombre: str | None = None
    subido_por: str = Field(alias="subidoPor")


class CierreIn(_Schema):
    resultado_final: str = Field(alias="resultadoFinal")
    ajuste_stock: bool = Field(alias="ajusteStock")
    ajuste_notas: str | None = Field(None, alias="ajusteNotas")
    cerrada_por: str = Field(alias="cerradaPor")
