# core/models/devoluciones/historial.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from core.database import Base
from core.models.time import utcnow


class DevolucionHistorial(Base):
    __tablename__ = "devolucion_historial"

    id = Column(Integer, primary_key=True)
    devolucion_id = Column(Integer, ForeignKey("devoluciones.id"), index=True, nullable=False)

    # estado del caso al momento del registro (texto plano, no enum: es bitácora)
    estado = Column(String, nullable=False)
    comentario = Column(Text, nullable=True)
    actor = Column(String, nullable=False, default="sistema")
    # "metadata" está reservado en declarative
    metadatos = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    devolucion = relationship("Devolucion", back_populates="historial")
