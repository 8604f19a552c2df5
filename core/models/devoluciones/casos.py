# core/models/devoluciones/casos.py
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from core.database import Base
from core.models.time import utcnow
from core.models.enums import DevolucionEstado


class Devolucion(Base):
    """
    Caso de devolución a proveedor / garantía.

    Raíz del agregado: movimientos, historial y adjuntos cuelgan de aquí
    y solo se agregan (append-only). Nunca se elimina físicamente.
    """
    __tablename__ = "devoluciones"

    id = Column(Integer, primary_key=True)
    codigo = Column(String, unique=True, nullable=False, index=True)

    # producto: repuesto del inventario o nombre libre (uno de los dos)
    inventario_item_id = Column(Integer, ForeignKey("inventario_items.id"), index=True, nullable=True)
    producto_nombre = Column(String, nullable=True)

    proveedor_id = Column(Integer, ForeignKey("proveedores.id"), index=True, nullable=True)
    cliente_id = Column(Integer, ForeignKey("clients.id"), index=True, nullable=True)

    motivo = Column(Text, nullable=False)
    diagnostico = Column(Text, nullable=True)
    sla_proveedor = Column(DateTime(timezone=True), nullable=True, index=True)

    estado = Column(
        SAEnum(
            DevolucionEstado,
            name="devolucion_estado",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=DevolucionEstado.REPORTADA,
        nullable=False,
        index=True,
    )

    # cierre
    resultado_final = Column(Text, nullable=True)
    ajuste_stock = Column(Boolean, default=False, nullable=False)
    ajuste_notas = Column(Text, nullable=True)
    cerrada_por = Column(String, nullable=True)
    cerrada_en = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relaciones
    inventario_item = relationship("InventarioItem")
    proveedor = relationship("Proveedor", back_populates="devoluciones")
    cliente = relationship("Cliente", back_populates="devoluciones")

    movimientos = relationship(
        "DevolucionMovimiento",
        back_populates="devolucion",
        order_by="(DevolucionMovimiento.fecha.asc(), DevolucionMovimiento.id.asc())",
        cascade="all, delete-orphan",
    )
    historial = relationship(
        "DevolucionHistorial",
        back_populates="devolucion",
        order_by="(DevolucionHistorial.created_at.desc(), DevolucionHistorial.id.desc())",
        cascade="all, delete-orphan",
    )
    adjuntos = relationship(
        "DevolucionAdjunto",
        back_populates="devolucion",
        order_by="(DevolucionAdjunto.created_at.desc(), DevolucionAdjunto.id.desc())",
        cascade="all, delete-orphan",
    )
