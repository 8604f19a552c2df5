# core/models/devoluciones/movimientos.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from core.database import Base
from core.models.time import utcnow


class DevolucionMovimiento(Base):
    """Entrega física del equipo entre partes (cadena de custodia)."""
    __tablename__ = "devolucion_movimientos"

    id = Column(Integer, primary_key=True)
    devolucion_id = Column(Integer, ForeignKey("devoluciones.id"), index=True, nullable=False)

    tipo = Column(String, nullable=False, index=True)  # recepcion_taller, entrega_proveedor, entrega_final...
    entregado_por = Column(String, nullable=False)
    recibido_por = Column(String, nullable=False)
    fecha = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    notas = Column(Text, nullable=True)

    devolucion = relationship("Devolucion", back_populates="movimientos")
