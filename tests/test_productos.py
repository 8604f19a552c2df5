import pytest

from modules.productos.services.services_productos import (
    ProductoNotFound,
    ProductoValidationError,
    crear_producto,
    eliminar_producto,
    listar_productos,
)

from conftest import AUTH


PRODUCTO = {
    "nombre": "iPhone 12 128GB",
    "descripcion": "Batería 89%",
    "categoria": "usados",
    "precio": 1800000,
    "imagen_url": "https://cdn.taller.test/iphone12.jpg",
}


def test_crear_y_listar(db):
    a = crear_producto(db, data=PRODUCTO)
    b = crear_producto(db, data={"nombre": "Cargador 20W", "categoria": "Accesorios", "precio": 45000})

    assert a["categoria"] == "usados"
    assert a["precio"] == 1800000.0
    assert b["categoria"] == "accesorios"
    assert b["descripcion"] == ""
    assert b["imagen_url"] is None

    assert [p["id"] for p in listar_productos(db)] == [b["id"], a["id"]]


def test_imagen_data_url(db):
    p = crear_producto(db, data={**PRODUCTO, "imagen_url": "data:image/png;base64,iVBORw0KGgo="})
    assert p["imagen_url"].startswith("data:")


@pytest.mark.parametrize(
    "overrides",
    [
        {"nombre": " "},
        {"categoria": "reacondicionados"},
        {"precio": 0},
        {"precio": "gratis"},
        {"imagen_url": "ftp://cdn.taller.test/x.jpg"},
    ],
)
def test_validaciones(db, overrides):
    with pytest.raises(ProductoValidationError):
        crear_producto(db, data={**PRODUCTO, **overrides})
    assert listar_productos(db) == []


def test_eliminar(db):
    p = crear_producto(db, data=PRODUCTO)

    eliminar_producto(db, producto_id=p["id"])
    assert listar_productos(db) == []

    with pytest.raises(ProductoNotFound):
        eliminar_producto(db, producto_id=p["id"])


def test_rutas_productos(client):
    # la vitrina es pública
    r = client.get("/products")
    assert r.status_code == 200
    assert r.json() == []

    body = {**PRODUCTO, "imagenUrl": PRODUCTO["imagen_url"]}
    del body["imagen_url"]

    assert client.post("/products", json=body).status_code == 401

    r = client.post("/products", json=body, headers=AUTH)
    assert r.status_code == 201, r.text
    producto_id = r.json()["id"]
    assert r.json()["imagen_url"] == PRODUCTO["imagen_url"]

    assert client.get("/products").json()[0]["id"] == producto_id

    r = client.post("/products", json={**body, "categoria": "otros"}, headers=AUTH)
    assert r.status_code == 400

    assert client.delete(f"/products/{producto_id}").status_code == 401
    assert client.delete(f"/products/{producto_id}", headers=AUTH).status_code == 204
    assert client.delete(f"/products/{producto_id}", headers=AUTH).status_code == 404
