# modules/devoluciones/services/services_devoluciones_reporte.py
from __future__ import annotations

import csv
from datetime import date, datetime, time, timezone
from io import BytesIO, StringIO
from typing import Any

import openpyxl
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from core.models.devoluciones import Devolucion
from core.models.time import iso_or_none, utcnow

from modules.devoluciones.services.services_devoluciones import (
    normalizar_alerta,
    construir_consulta,
    filtrar_por_alerta,
)
from modules.devoluciones.services.services_devoluciones_core import (
    DevolucionValidationError,
    normalizar_estado,
    parse_datetime,
)


COLUMNAS = [
    "codigo",
    "estado",
    "motivo",
    "diagnostico",
    "fecha_creacion",
    "fecha_actualizacion",
    "sla_proveedor",
    "resultado",
    "proveedor",
    "cliente",
]


def _parse_limite(value: Any, campo: str, *, fin_de_dia: bool) -> datetime | None:
    """
    'YYYY-MM-DD' cubre el día completo (desde 00:00 / hasta 23:59:59.999999 UTC).
    Un datetime ISO se usa tal cual.
    """
    if value is None or value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        d = value
    else:
        raw = str(value).strip()
        if len(raw) != 10:
            return parse_datetime(value, campo)
        try:
            d = date.fromisoformat(raw)
        except ValueError as e:
            raise DevolucionValidationError(f"Fecha inválida en '{campo}': {value}") from e
    return datetime.combine(d, time.max if fin_de_dia else time.min, tzinfo=timezone.utc)


def _fila(d: Devolucion) -> list[Any]:
    proveedor = getattr(d, "proveedor", None)
    cliente = getattr(d, "cliente", None)
    return [
        d.codigo,
        normalizar_estado(d.estado).value,
        d.motivo,
        d.diagnostico,
        iso_or_none(d.created_at),
        iso_or_none(d.updated_at),
        iso_or_none(d.sla_proveedor),
        d.resultado_final,
        proveedor.nombre if proveedor else None,
        cliente.nombre if cliente else None,
    ]


def obtener_filas_reporte(
    db: Session,
    *,
    estado: str | None = None,
    alerta: str | None = None,
    q: str | None = None,
    desde: Any = None,
    hasta: Any = None,
) -> list[list[Any]]:
    """Mismos filtros que el listado, sin tope de filas, + rango de creación."""
    alerta = normalizar_alerta(alerta)
    stmt = construir_consulta(
        estado=estado,
        q=q,
        desde=_parse_limite(desde, "desde", fin_de_dia=False),
        hasta=_parse_limite(hasta, "hasta", fin_de_dia=True),
    )
    filas = list(db.execute(stmt).scalars().all())
    filas = filtrar_por_alerta(filas, alerta, now=utcnow())
    return [_fila(d) for d in filas]


def construir_csv(filas: list[list[Any]]) -> str:
    """
    Encabezado + una línea por caso, unidas con '\\n'.
    Valores con coma, comillas o salto de línea van entre comillas
    (comillas internas duplicadas).
    """
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(COLUMNAS)
    writer.writerows(filas)
    return buffer.getvalue()[: -len("\n")]


def exportar_csv(db: Session, **filtros: Any) -> str:
    return construir_csv(obtener_filas_reporte(db, **filtros))


def exportar_xlsx(db: Session, **filtros: Any) -> BytesIO:
    filas = obtener_filas_reporte(db, **filtros)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Devoluciones"

    for col_idx, header in enumerate(COLUMNAS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = openpyxl.styles.Font(bold=True)

    for row_idx, row in enumerate(filas, start=2):
        for col_idx, value in enumerate(row, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    for col_idx, _ in enumerate(COLUMNAS, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = 20

    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)
    return stream
