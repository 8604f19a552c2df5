# core/models/secuencias.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String

from core.database import Base


class Secuencia(Base):
    """
    Contador por nombre (equivalente portable a una SEQUENCE de Postgres).
    valor = último número entregado.
    """
    __tablename__ = "secuencias"

    nombre = Column(String, primary_key=True)
    valor = Column(Integer, nullable=False, default=0)
