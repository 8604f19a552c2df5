# modules/devoluciones/routes/routes_devoluciones.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.orm import Session

from core.database import get_db
from core.security import require_admin_dep

from modules.devoluciones.services.services_devoluciones_core import DevolucionDomainError
from modules.devoluciones.services.services_devoluciones import (
    actualizar_devolucion,
    agregar_adjunto,
    agregar_comentario,
    crear_devolucion,
    listar_devoluciones,
    obtener_detalle,
    registrar_movimiento,
    resumen_devoluciones,
)
from modules.devoluciones.services.services_devoluciones_estados import (
    cambiar_estado,
    cerrar_devolucion,
)
from modules.devoluciones.services.services_devoluciones_reporte import (
    exportar_csv,
    exportar_xlsx,
)

from .devoluciones_common import (
    AdjuntoIn,
    CierreIn,
    ComentarioIn,
    DevolucionCreateIn,
    DevolucionUpdateIn,
    EstadoIn,
    MovimientoIn,
    http_error,
)

router = APIRouter(
    prefix="/devoluciones",
    tags=["devoluciones"],
    dependencies=[Depends(require_admin_dep)],
)


# ============================================================
# LISTADO / RESUMEN / REPORTE
# ============================================================

@router.get("")
async def devoluciones_listar(
    estado: str | None = Query(None),
    alerta: str | None = Query(None),
    q: str | None = Query(None),
    db: Session = Depends(get_db),
):
    try:
        return listar_devoluciones(db, estado=estado, alerta=alerta, q=q)
    except DevolucionDomainError as e:
        raise http_error(e)


@router.get("/resumen")
async def devoluciones_resumen(db: Session = Depends(get_db)):
    return resumen_devoluciones(db)


@router.get("/report/export")
async def devoluciones_exportar(
    estado: str | None = Query(None),
    alerta: str | None = Query(None),
    q: str | None = Query(None),
    desde: str | None = Query(None),
    hasta: str | None = Query(None),
    formato: str = Query("csv"),
    db: Session = Depends(get_db),
):
    filtros = {"estado": estado, "alerta": alerta, "q": q, "desde": desde, "hasta": hasta}

    try:
        if formato.lower() == "xlsx":
            stream = exportar_xlsx(db, **filtros)
            return StreamingResponse(
                stream,
                media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                headers={"Content-Disposition": 'attachment; filename="devoluciones.xlsx"'},
            )

        contenido = exportar_csv(db, **filtros)
    except DevolucionDomainError as e:
        raise http_error(e)

    return Response(
        content=contenido,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="devoluciones.csv"'},
    )


# ============================================================
# ALTA / DETALLE / EDICIÓN
# ============================================================

@router.post("", status_code=201)
async def devoluciones_crear(payload: DevolucionCreateIn, db: Session = Depends(get_db)):
    try:
        return crear_devolucion(db, data=payload.model_dump())
    except DevolucionDomainError as e:
        raise http_error(e)


@router.get("/{devolucion_id}")
async def devoluciones_detalle(devolucion_id: int, db: Session = Depends(get_db)):
    try:
        return obtener_detalle(db, devolucion_id)
    except DevolucionDomainError as e:
        raise http_error(e)


@router.patch("/{devolucion_id}")
async def devoluciones_actualizar(
    devolucion_id: int,
    payload: DevolucionUpdateIn,
    db: Session = Depends(get_db),
):
    try:
        return actualizar_devolucion(
            db,
            devolucion_id=devolucion_id,
            data=payload.model_dump(exclude_unset=True),
        )
    except DevolucionDomainError as e:
        raise http_error(e)


# ============================================================
# MOVIMIENTOS / HISTORIAL / ADJUNTOS
# ============================================================

@router.post("/{devolucion_id}/movimientos", status_code=201)
async def devoluciones_movimiento(
    devolucion_id: int,
    payload: MovimientoIn,
    db: Session = Depends(get_db),
):
    try:
        return registrar_movimiento(db, devolucion_id=devolucion_id, data=payload.model_dump())
    except DevolucionDomainError as e:
        raise http_error(e)


@router.post("/{devolucion_id}/historial", status_code=201)
async def devoluciones_comentario(
    devolucion_id: int,
    payload: ComentarioIn,
    db: Session = Depends(get_db),
):
    try:
        return agregar_comentario(db, devolucion_id=devolucion_id, comentario=payload.comentario)
    except DevolucionDomainError as e:
        raise http_error(e)


@router.post("/{devolucion_id}/adjuntos", status_code=201)
async def devoluciones_adjunto(
    devolucion_id: int,
    payload: AdjuntoIn,
    db: Session = Depends(get_db),
):
    try:
        return agregar_adjunto(db, devolucion_id=devolucion_id, data=payload.model_dump())
    except DevolucionDomainError as e:
        raise http_error(e)


# ============================================================
# ESTADO / CIERRE
# ============================================================

@router.post("/{devolucion_id}/estado")
async def devoluciones_estado(
    devolucion_id: int,
    payload: EstadoIn,
    db: Session = Depends(get_db),
):
    try:
        return cambiar_estado(
            db,
            devolucion_id=devolucion_id,
            estado=payload.estado,
            comentario=payload.comentario,
            sla_proveedor=payload.sla_proveedor,
        )
    except DevolucionDomainError as e:
        raise http_error(e)


@router.post("/{devolucion_id}/cerrar")
async def devoluciones_cerrar(
    devolucion_id: int,
    payload: CierreIn,
    db: Session = Depends(get_db),
):
    try:
        return cerrar_devolucion(
            db,
            devolucion_id=devolucion_id,
            resultado_final=payload.resultado_final,
            ajuste_stock=payload.ajuste_stock,
            cerrada_por=payload.cerrada_por,
            ajuste_notas=payload.ajuste_notas,
        )
    except DevolucionDomainError as e:
        raise http_error(e)
