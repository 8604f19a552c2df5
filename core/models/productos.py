# core/models/productos.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String, DateTime, Text, Numeric
from sqlalchemy.types import Enum as SAEnum

from core.database import Base
from core.models.time import utcnow
from core.models.enums import ProductoCategoria


class Producto(Base):
    """Equipo o accesorio publicado en la vitrina."""
    __tablename__ = "productos"

    id = Column(Integer, primary_key=True)

    nombre = Column(String, nullable=False)
    descripcion = Column(Text, nullable=False, default="")
    categoria = Column(
        SAEnum(
            ProductoCategoria,
            name="producto_categoria",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True,
    )
    precio = Column(Numeric(12, 2), nullable=False)
    imagen_url = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
