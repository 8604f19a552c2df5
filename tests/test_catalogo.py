import pytest

from modules.catalogo.services.services_catalogo_core import (
    CatalogoNotFound,
    CatalogoValidationError,
)
from modules.catalogo.services.services_clientes import (
    crear_cliente,
    listar_clientes,
    obtener_cliente,
)
from modules.catalogo.services.services_inventario import (
    actualizar_item,
    alertas_stock,
    crear_item,
    eliminar_item,
    listar_items,
)
from modules.catalogo.services.services_proveedores import crear_proveedor, listar_proveedores

from conftest import AUTH


ITEM = {
    "nombre": "Batería Moto G8",
    "categoria": "baterias",
    "stock_actual": 10,
    "stock_minimo": 2,
    "precio_compra": 30000,
    "precio_venta": 55000,
}


# ============================
#   CLIENTES
# ============================

def test_clientes(db):
    c = crear_cliente(db, data={"nombre": "  Sofía Díaz ", "documento": "998877", "email": "SOFIA@mail.test"})
    assert c["nombre"] == "Sofía Díaz"
    assert c["email"] == "sofia@mail.test"

    crear_cliente(db, data={"nombre": "Jorge Lima"})

    assert [x["nombre"] for x in listar_clientes(db, q="9988")] == ["Sofía Díaz"]
    assert len(listar_clientes(db)) == 2
    assert obtener_cliente(db, c["id"])["documento"] == "998877"

    with pytest.raises(CatalogoNotFound):
        obtener_cliente(db, 999)
    with pytest.raises(CatalogoValidationError):
        crear_cliente(db, data={"nombre": " "})
    with pytest.raises(CatalogoValidationError):
        crear_cliente(db, data={"nombre": "Ana", "email": "ana@"})


# ============================
#   PROVEEDORES
# ============================

def test_proveedores_orden_alfabetico(db):
    crear_proveedor(db, data={"nombre": "Zeta Repuestos"})
    crear_proveedor(db, data={"nombre": "Alfa Partes", "contacto": "Rita"})

    assert [p["nombre"] for p in listar_proveedores(db)] == ["Alfa Partes", "Zeta Repuestos"]
    assert [p["nombre"] for p in listar_proveedores(db, q="rita")] == ["Alfa Partes"]


# ============================
#   INVENTARIO
# ============================

def test_inventario_crud(db, proveedor):
    item = crear_item(db, data={**ITEM, "proveedor_id": proveedor.id})
    assert item["proveedor_nombre"] == "Repuestos Andes"
    assert item["stock_bajo"] is False

    bajo = actualizar_item(db, item_id=item["id"], data={"stock_actual": 1})
    assert bajo["stock_bajo"] is True

    assert [i["id"] for i in listar_items(db, estado="bajo")] == [item["id"]]
    assert listar_items(db, estado="ok") == []
    assert [a["id"] for a in alertas_stock(db)] == [item["id"]]

    with pytest.raises(CatalogoValidationError):
        actualizar_item(db, item_id=item["id"], data={})
    with pytest.raises(CatalogoValidationError):
        actualizar_item(db, item_id=item["id"], data={"precio_venta": -5})
    with pytest.raises(CatalogoNotFound):
        actualizar_item(db, item_id=item["id"], data={"proveedor_id": 999})

    eliminar_item(db, item_id=item["id"])
    assert listar_items(db) == []

    with pytest.raises(CatalogoNotFound):
        eliminar_item(db, item_id=item["id"])


def test_inventario_busqueda(db):
    crear_item(db, data=ITEM)
    crear_item(db, data={**ITEM, "nombre": "Pantalla Moto G8"})

    assert [i["nombre"] for i in listar_items(db, q="pantalla")] == ["Pantalla Moto G8"]
    assert [i["nombre"] for i in listar_items(db)] == ["Batería Moto G8", "Pantalla Moto G8"]


def test_rutas_catalogo(client):
    r = client.post("/clients", json={"nombre": "Elena"}, headers=AUTH)
    assert r.status_code == 201
    assert client.get(f"/clients/{r.json()['id']}", headers=AUTH).status_code == 200

    r = client.post("/providers", json={"nombre": "Distribuidora Sur"}, headers=AUTH)
    assert r.status_code == 201
    proveedor_id = r.json()["id"]

    r = client.post(
        "/inventory",
        json={
            "nombre": "Flex carga",
            "categoria": "flex",
            "proveedorId": proveedor_id,
            "stockActual": 0,
            "stockMinimo": 1,
            "precioCompra": 5000,
            "precioVenta": 9000,
        },
        headers=AUTH,
    )
    assert r.status_code == 201, r.text
    item_id = r.json()["id"]

    assert len(client.get("/inventory/alerts", headers=AUTH).json()) == 1

    r = client.patch(f"/inventory/{item_id}", json={"stockActual": 4}, headers=AUTH)
    assert r.status_code == 200
    assert r.json()["stock_actual"] == 4

    assert client.delete(f"/inventory/{item_id}", headers=AUTH).status_code == 204
    assert client.delete(f"/inventory/{item_id}", headers=AUTH).status_code == 404


def test_no_se_elimina_repuesto_con_devoluciones(db, item, nueva_devolucion):
    nueva_devolucion(producto_nombre=None, inventario_item_id=item.id)

    with pytest.raises(CatalogoValidationError):
        eliminar_item(db, item_id=item.id)

    assert len(listar_items(db)) == 1
