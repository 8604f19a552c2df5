# core/models/reparaciones.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from core.database import Base
from core.models.time import utcnow
from core.models.enums import ReparacionEstado


class RepairTicket(Base):
    __tablename__ = "repair_tickets"

    id = Column(Integer, primary_key=True)
    codigo = Column(String, unique=True, nullable=False, index=True)

    cliente_id = Column(Integer, ForeignKey("clients.id"), index=True, nullable=False)

    # equipo
    dispositivo_tipo = Column(String, nullable=True)
    marca = Column(String, nullable=True)
    modelo = Column(String, nullable=True)
    referencia = Column(String, nullable=True)
    color = Column(String, nullable=True)
    serie = Column(String, nullable=True)

    motivo_ingreso = Column(Text, nullable=False)
    diagnostico = Column(Text, nullable=True)
    accesorios = Column(Text, nullable=True)

    estado = Column(
        SAEnum(
            ReparacionEstado,
            name="reparacion_estado",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ReparacionEstado.INGRESADO,
        nullable=False,
        index=True,
    )

    costo_estimado = Column(Numeric(12, 2), nullable=False, default=0)
    costo_final = Column(Numeric(12, 2), nullable=False, default=0)
    responsable = Column(String, nullable=True)
    notas = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    cliente = relationship("Cliente", back_populates="reparaciones")
    updates = relationship(
        "RepairUpdate",
        back_populates="repair",
        order_by="(RepairUpdate.created_at.desc(), RepairUpdate.id.desc())",
        cascade="all, delete-orphan",
    )


class RepairUpdate(Base):
    """Avance registrado sobre una reparación (bitácora)."""
    __tablename__ = "repair_updates"

    id = Column(Integer, primary_key=True)
    repair_id = Column(Integer, ForeignKey("repair_tickets.id"), index=True, nullable=False)

    estado = Column(String, nullable=False)
    comentario = Column(Text, nullable=True)
    registrado_por = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    repair = relationship("RepairTicket", back_populates="updates")
