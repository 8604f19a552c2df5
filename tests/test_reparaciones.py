import re

import pytest

from core.models import Cliente

from modules.reparaciones.services.services_reparaciones import (
    ReparacionNotFound,
    ReparacionValidationError,
    actualizar_reparacion,
    crear_reparacion,
    listar_reparaciones,
    obtener_reparacion,
    registrar_avance,
)

from conftest import AUTH


def test_crear_con_cliente_existente(db, cliente):
    r = crear_reparacion(
        db,
        data={
            "cliente_id": cliente.id,
            "motivo_ingreso": "Pantalla rota",
            "marca": "Samsung",
            "modelo": "A52",
            "costo_estimado": 150000,
        },
    )

    assert re.fullmatch(r"RPR-\d{8}-0001", r["codigo"])
    assert r["estado"] == "ingresado"
    assert r["cliente"]["nombre"] == "Carlos Pérez"
    assert r["costo_estimado"] == 150000.0
    assert len(r["updates"]) == 1
    assert r["updates"][0]["comentario"] == "Ingreso"
    assert r["updates"][0]["registrado_por"] == "Sistema"


def test_crear_con_cliente_nuevo_en_la_misma_transaccion(db):
    r = crear_reparacion(
        db,
        data={
            "cliente": {"nombre": "María Gómez", "telefono": "3010000000"},
            "motivo_ingreso": "No carga",
            "responsable": "Luis",
            "notas": "Trae cargador",
        },
    )

    assert r["cliente"]["nombre"] == "María Gómez"
    assert r["updates"][0]["comentario"] == "Trae cargador"
    assert r["updates"][0]["registrado_por"] == "Luis"
    assert db.query(Cliente).count() == 1


def test_crear_validaciones(db, cliente):
    with pytest.raises(ReparacionValidationError):
        crear_reparacion(db, data={"motivo_ingreso": "No carga"})
    with pytest.raises(ReparacionValidationError):
        crear_reparacion(db, data={"cliente_id": cliente.id, "motivo_ingreso": "  "})
    with pytest.raises(ReparacionValidationError):
        crear_reparacion(
            db,
            data={"cliente_id": cliente.id, "motivo_ingreso": "x", "costo_final": -1},
        )
    with pytest.raises(ReparacionValidationError):
        crear_reparacion(
            db,
            data={"cliente": {"nombre": "Ana", "email": "no-es-email"}, "motivo_ingreso": "x"},
        )
    with pytest.raises(ReparacionNotFound):
        crear_reparacion(db, data={"cliente_id": 999, "motivo_ingreso": "x"})

    assert listar_reparaciones(db) == []


def test_listar_y_buscar(db, cliente):
    a = crear_reparacion(db, data={"cliente_id": cliente.id, "motivo_ingreso": "Pantalla"})
    b = crear_reparacion(
        db,
        data={"cliente": {"nombre": "Pedro Ruiz"}, "motivo_ingreso": "Batería"},
    )
    registrar_avance(db, repair_id=b["id"], estado="diagnostico")

    assert [x["id"] for x in listar_reparaciones(db)] == [b["id"], a["id"]]
    assert [x["id"] for x in listar_reparaciones(db, q="ruiz")] == [b["id"]]
    assert [x["id"] for x in listar_reparaciones(db, q=a["codigo"])] == [a["id"]]
    assert [x["id"] for x in listar_reparaciones(db, estado="diagnostico")] == [b["id"]]
    assert len(listar_reparaciones(db, estado="desconocido")) == 2


def test_actualizar(db, cliente):
    r = crear_reparacion(db, data={"cliente_id": cliente.id, "motivo_ingreso": "Pantalla"})

    with pytest.raises(ReparacionValidationError):
        actualizar_reparacion(db, repair_id=r["id"], data={})

    out = actualizar_reparacion(
        db,
        repair_id=r["id"],
        data={"diagnostico": "Display dañado", "costo_final": 200000, "estado": "en_proceso"},
    )
    assert out["diagnostico"] == "Display dañado"
    assert out["costo_final"] == 200000.0
    assert out["estado"] == "en_proceso"

    with pytest.raises(ReparacionNotFound):
        actualizar_reparacion(db, repair_id=999, data={"notas": "x"})


def test_registrar_avance_es_atomico(db, cliente):
    r = crear_reparacion(db, data={"cliente_id": cliente.id, "motivo_ingreso": "Pantalla"})

    avance = registrar_avance(
        db,
        repair_id=r["id"],
        estado="listo",
        comentario="Listo para entregar",
        registrado_por="Luis",
    )
    assert avance["estado"] == "listo"
    assert avance["registrado_por"] == "Luis"

    detalle = obtener_reparacion(db, r["id"])
    assert detalle["estado"] == "listo"
    assert [u["estado"] for u in detalle["updates"]] == ["listo", "ingresado"]

    with pytest.raises(ReparacionValidationError):
        registrar_avance(db, repair_id=r["id"], estado="perdido")
    assert obtener_reparacion(db, r["id"])["estado"] == "listo"


def test_rutas_reparaciones(client):
    r = client.post(
        "/repairs",
        json={"client": {"nombre": "Laura"}, "motivoIngreso": "No enciende", "costoEstimado": 50000},
        headers=AUTH,
    )
    assert r.status_code == 201, r.text
    repair_id = r.json()["id"]

    r = client.post(
        f"/repairs/{repair_id}/updates",
        json={"estado": "diagnostico", "registradoPor": "Luis"},
        headers=AUTH,
    )
    assert r.status_code == 201

    r = client.get(f"/repairs/{repair_id}", headers=AUTH)
    assert r.json()["estado"] == "diagnostico"

    r = client.patch(f"/repairs/{repair_id}", json={}, headers=AUTH)
    assert r.status_code == 400

    r = client.get("/repairs/999", headers=AUTH)
    assert r.status_code == 404

    r = client.post("/repairs", json={"motivoIngreso": "x"}, headers=AUTH)
    assert r.status_code == 400
