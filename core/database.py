# core/database.py
"""
Base de datos – Taller

✔ SQLite en desarrollo (FK activadas por conexión)
✔ Postgres en producción (pool configurable)
✔ Una sesión por request (get_db); las transacciones las abren los services
"""

from __future__ import annotations

import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from core.config import settings


# =========================================================
# ENGINE / SESSION
# =========================================================

DATABASE_URL = settings.DATABASE_URL
ES_SQLITE = DATABASE_URL.startswith("sqlite")


def _engine_kwargs() -> dict:
    if ES_SQLITE:
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
    }


engine = create_engine(
    DATABASE_URL,
    future=True,
    pool_pre_ping=True,
    **_engine_kwargs(),
)


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite no valida FK salvo que se pida en cada conexión
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


# =========================================================
# DEPENDENCY
# =========================================================

def get_db():
    """
    Una sesión (y por lo tanto una conexión dedicada) por request.
    Toda escritura multi-sentencia corre dentro de esta sesión.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# INIT DB
# =========================================================

def init_db() -> None:
    """Registra los modelos en Base (import diferido) y crea las tablas faltantes."""
    import core.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
