import csv
from datetime import timedelta
from io import StringIO

import openpyxl
import pytest

from core.models.devoluciones import Devolucion
from core.models.time import utcnow

from modules.devoluciones.services.services_devoluciones_core import DevolucionValidationError
from modules.devoluciones.services.services_devoluciones_reporte import (
    COLUMNAS,
    construir_csv,
    exportar_csv,
    exportar_xlsx,
)
from modules.devoluciones.services.services_devoluciones_estados import cambiar_estado


ENCABEZADO = ",".join(COLUMNAS)


def test_encabezado_siempre_presente(db):
    assert exportar_csv(db) == ENCABEZADO
    assert ENCABEZADO == (
        "codigo,estado,motivo,diagnostico,fecha_creacion,fecha_actualizacion,"
        "sla_proveedor,resultado,proveedor,cliente"
    )


def test_csv_escapa_comas_comillas_y_saltos():
    filas = [
        ["DEV-250101-0001", "reportada", "Broken, cracked", 'dice "no"', None, None, None, None, None, None],
        ["DEV-250101-0002", "reportada", "linea 1\nlinea 2", "", None, None, None, None, None, None],
    ]

    salida = construir_csv(filas)
    lineas = salida.split("\n")

    assert lineas[0] == ENCABEZADO
    assert lineas[1] == 'DEV-250101-0001,reportada,"Broken, cracked","dice ""no""",,,,,,'
    assert not salida.endswith("\n")

    leidas = list(csv.reader(StringIO(salida)))
    assert leidas[2][2] == "linea 1\nlinea 2"


def test_exportar_una_fila_por_caso(db, nueva_devolucion, proveedor):
    d = nueva_devolucion(motivo="Broken, cracked", proveedor_id=proveedor.id)

    salida = exportar_csv(db)
    filas = list(csv.reader(StringIO(salida)))

    assert len(filas) == 2
    fila = dict(zip(COLUMNAS, filas[1]))
    assert fila["codigo"] == d["codigo"]
    assert fila["motivo"] == "Broken, cracked"
    assert fila["proveedor"] == "Repuestos Andes"
    assert fila["cliente"] == ""
    assert fila["fecha_creacion"].endswith("+00:00")


def test_exportar_filtra_por_estado_y_texto(db, nueva_devolucion):
    a = nueva_devolucion()
    b = nueva_devolucion()
    cambiar_estado(db, devolucion_id=b["id"], estado="rechazada")

    solo_rechazadas = exportar_csv(db, estado="rechazada").split("\n")
    assert len(solo_rechazadas) == 2
    assert solo_rechazadas[1].startswith(b["codigo"])

    por_codigo = exportar_csv(db, q=a["codigo"]).split("\n")
    assert len(por_codigo) == 2
    assert por_codigo[1].startswith(a["codigo"])


def test_exportar_rango_de_fechas(db, nueva_devolucion):
    viejo = nueva_devolucion()
    nuevo = nueva_devolucion()

    caso = db.get(Devolucion, viejo["id"])
    caso.created_at = utcnow() - timedelta(days=10)
    db.commit()

    hoy = utcnow().date().isoformat()
    filas = exportar_csv(db, desde=hoy, hasta=hoy).split("\n")
    assert [f.split(",")[0] for f in filas[1:]] == [nuevo["codigo"]]

    hace_diez = (utcnow() - timedelta(days=10)).date().isoformat()
    filas = exportar_csv(db, desde=hace_diez, hasta=hace_diez).split("\n")
    assert [f.split(",")[0] for f in filas[1:]] == [viejo["codigo"]]


def test_exportar_fecha_invalida(db):
    with pytest.raises(DevolucionValidationError):
        exportar_csv(db, desde="2025-13-40")


def test_exportar_xlsx(db, nueva_devolucion):
    d = nueva_devolucion()

    wb = openpyxl.load_workbook(exportar_xlsx(db))
    ws = wb.active

    assert ws.title == "Devoluciones"
    assert [c.value for c in ws[1]] == COLUMNAS
    assert ws.cell(row=2, column=1).value == d["codigo"]
