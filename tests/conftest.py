import os
from datetime import timedelta

# antes de importar core.config (Settings se instancia al importar)
os.environ["ADMIN_API_KEY"] = "test-key"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "development"
os.environ["APP_DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import core.models  # noqa: F401
from core.database import Base, get_db
from core.models import Cliente, InventarioItem, Proveedor
from core.models.time import utcnow

from modules.devoluciones.services.services_devoluciones import crear_devolucion


AUTH = {"x-api-key": "test-key"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================
#   FACTORIES
# ============================

@pytest.fixture
def proveedor(db):
    p = Proveedor(nombre="Repuestos Andes", contacto="Laura", email="ventas@andes.test")
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def cliente(db):
    c = Cliente(nombre="Carlos Pérez", documento="1020304050", telefono="3001234567")
    db.add(c)
    db.commit()
    return c


@pytest.fixture
def item(db, proveedor):
    i = InventarioItem(
        nombre="Pantalla iPhone 11",
        categoria="pantallas",
        proveedor_id=proveedor.id,
        stock_actual=2,
        stock_minimo=3,
        precio_compra=120000,
        precio_venta=180000,
    )
    db.add(i)
    db.commit()
    return i


def payload_devolucion(**overrides):
    data = {
        "producto_nombre": "Pantalla X",
        "motivo": "no enciende",
        "primer_movimiento": {
            "tipo": "recepcion_taller",
            "entregado_por": "Cliente",
            "recibido_por": "Técnico",
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def nueva_devolucion(db):
    def _crear(**overrides):
        return crear_devolucion(db, data=payload_devolucion(**overrides))
    return _crear


def en_horas(horas: float):
    return utcnow() + timedelta(hours=horas)


@pytest.fixture
def falla_al_guardar():
    """
    Hace fallar el flush (OperationalError) cuando la sesión tiene filas
    nuevas del modelo indicado. objetivo: una Session o un sessionmaker.
    """
    armados = []

    def _armar(objetivo, modelo):
        def _before_flush(session, flush_context, instances):
            if any(isinstance(obj, modelo) for obj in session.new):
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        event.listen(objetivo, "before_flush", _before_flush)
        armados.append((objetivo, _before_flush))

    yield _armar

    for objetivo, fn in armados:
        event.remove(objetivo, "before_flush", fn)
