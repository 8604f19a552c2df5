import pytest

from core.config import settings
from core.models.devoluciones import DevolucionMovimiento

from conftest import AUTH, en_horas


NUEVA = {
    "productoNombre": "Pantalla X",
    "motivo": "no enciende",
    "primerMovimiento": {
        "tipo": "recepcion_taller",
        "entregadoPor": "Cliente",
        "recibidoPor": "Técnico",
    },
}


def _crear(client, **extra):
    r = client.post("/devoluciones", json={**NUEVA, **extra}, headers=AUTH)
    assert r.status_code == 201, r.text
    return r.json()


# ============================
#   AUTH
# ============================

def test_sin_api_key(client):
    r = client.get("/devoluciones")
    assert r.status_code == 401


def test_bearer_token(client):
    r = client.get("/devoluciones", headers={"Authorization": "Bearer test-key"})
    assert r.status_code == 200


def test_api_key_no_configurada(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", None)
    r = client.get("/devoluciones", headers=AUTH)
    assert r.status_code == 500


def test_health_es_publico(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["db"]["ok"] is True


# ============================
#   FLUJO
# ============================

def test_flujo_completo(client):
    d = _crear(client)
    assert d["codigo"].startswith("DEV-")
    assert d["estado"] == "reportada"

    r = client.get(f"/devoluciones/{d['id']}", headers=AUTH)
    assert r.status_code == 200
    assert r.json()["historial"][0]["comentario"] == "Ingreso reportado"

    r = client.post(
        f"/devoluciones/{d['id']}/estado",
        json={"estado": "revision_tecnica"},
        headers=AUTH,
    )
    assert r.status_code == 200

    r = client.post(
        f"/devoluciones/{d['id']}/estado",
        json={"estado": "entregada_proveedor"},
        headers=AUTH,
    )
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "MissingSla"

    r = client.post(
        f"/devoluciones/{d['id']}/estado",
        json={"estado": "entregada_proveedor", "slaProveedor": en_horas(30).isoformat()},
        headers=AUTH,
    )
    assert r.status_code == 200
    assert r.json()["sla_alerta"] == "72h"

    for estado in ("espera_regreso", "reparada_entregada"):
        r = client.post(f"/devoluciones/{d['id']}/estado", json={"estado": estado}, headers=AUTH)
        assert r.status_code == 200

    cierre = {"resultadoFinal": "Equipo reparado", "ajusteStock": True, "cerradaPor": "Ana"}

    r = client.post(f"/devoluciones/{d['id']}/cerrar", json=cierre, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "MissingFinalMovement"

    r = client.post(
        f"/devoluciones/{d['id']}/movimientos",
        json={"tipo": "entrega_final", "entregadoPor": "Técnico", "recibidoPor": "Cliente"},
        headers=AUTH,
    )
    assert r.status_code == 201
    assert [m["tipo"] for m in r.json()][-1] == "entrega_final"

    r = client.post(
        f"/devoluciones/{d['id']}/cerrar",
        json={**cierre, "ajusteStock": False},
        headers=AUTH,
    )
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "StockAdjustmentRequired"

    r = client.post(f"/devoluciones/{d['id']}/cerrar", json=cierre, headers=AUTH)
    assert r.status_code == 200
    assert r.json()["estado"] == "cerrada"

    r = client.post(f"/devoluciones/{d['id']}/cerrar", json=cierre, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "AlreadyClosed"


def test_transicion_invalida_400(client):
    d = _crear(client)
    r = client.post(f"/devoluciones/{d['id']}/estado", json={"estado": "cerrada"}, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "InvalidTransition"


@pytest.mark.parametrize(
    "path, method, body",
    [
        ("/devoluciones/999", "get", None),
        ("/devoluciones/999/estado", "post", {"estado": "revision_tecnica"}),
        ("/devoluciones/999/historial", "post", {"comentario": "hola"}),
    ],
)
def test_inexistente_404(client, path, method, body):
    r = client.request(method.upper(), path, json=body, headers=AUTH)
    assert r.status_code == 404


def test_validacion_400(client):
    r = client.post("/devoluciones", json={**NUEVA, "motivo": "no"}, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "DevolucionValidationError"


def test_falla_de_persistencia_500(client, session_factory, falla_al_guardar):
    falla_al_guardar(session_factory, DevolucionMovimiento)

    r = client.post("/devoluciones", json=NUEVA, headers=AUTH)
    assert r.status_code == 500
    assert r.json()["detail"]["error"] == "StorageError"

    assert client.get("/devoluciones", headers=AUTH).json() == []


def test_patch_y_comentario_y_adjunto(client):
    d = _crear(client)

    r = client.patch(f"/devoluciones/{d['id']}", json={}, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "NothingToUpdate"

    r = client.patch(f"/devoluciones/{d['id']}", json={"diagnostico": "Placa"}, headers=AUTH)
    assert r.status_code == 200
    assert r.json()["diagnostico"] == "Placa"

    r = client.post(f"/devoluciones/{d['id']}/historial", json={"comentario": "Llamar"}, headers=AUTH)
    assert r.status_code == 201
    assert r.json()[0]["comentario"] == "Llamar"

    r = client.post(
        f"/devoluciones/{d['id']}/adjuntos",
        json={"tipo": "foto", "url": "https://cdn.test/a.jpg", "subidoPor": "Ana"},
        headers=AUTH,
    )
    assert r.status_code == 201
    assert r.json()[0]["subido_por"] == "Ana"


# ============================
#   LISTADO / RESUMEN / REPORTE
# ============================

def test_listar_y_resumen(client):
    a = _crear(client)
    _crear(client, slaProveedor=en_horas(-3).isoformat())

    r = client.get("/devoluciones", params={"alerta": "overdue"}, headers=AUTH)
    assert r.status_code == 200
    assert len(r.json()) == 1

    r = client.get("/devoluciones", params={"q": a["codigo"]}, headers=AUTH)
    assert [x["id"] for x in r.json()] == [a["id"]]

    r = client.get("/devoluciones", params={"alerta": "pronto"}, headers=AUTH)
    assert r.status_code == 400

    r = client.get("/devoluciones/resumen", headers=AUTH)
    assert r.status_code == 200
    assert r.json()["total"] == 2
    assert r.json()["por_alerta"]["overdue"] == 1


def test_reporte_csv(client):
    _crear(client, motivo="Broken, cracked")

    r = client.get("/devoluciones/report/export", headers=AUTH)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "attachment" in r.headers["content-disposition"]

    lineas = r.text.split("\n")
    assert lineas[0].startswith("codigo,estado,motivo")
    assert '"Broken, cracked"' in lineas[1]


def test_reporte_xlsx(client):
    _crear(client)
    r = client.get("/devoluciones/report/export", params={"formato": "xlsx"}, headers=AUTH)
    assert r.status_code == 200
    assert r.content[:2] == b"PK"
