# core/models/devoluciones/adjuntos.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from core.database import Base
from core.models.time import utcnow


class DevolucionAdjunto(Base):
    """
    Evidencia de la devolución.
    Solo guardamos referencia (url); el archivo vive en storage externo.
    """
    __tablename__ = "devolucion_adjuntos"

    id = Column(Integer, primary_key=True)
    devolucion_id = Column(Integer, ForeignKey("devoluciones.id"), index=True, nullable=False)

    tipo = Column(String, nullable=False)
    url = Column(String, nullable=False)
    nombre = Column(String, nullable=True)
    subido_por = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    devolucion = relationship("Devolucion", back_populates="adjuntos")
