# core/models/facturacion.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from core.database import Base
from core.models.time import utcnow
from core.models.enums import FacturaEstado, FacturaTipo


class Factura(Base):
    """Factura o cotización. Los totales se guardan ya calculados."""
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    consecutivo = Column(String, unique=True, nullable=False, index=True)

    tipo = Column(
        SAEnum(FacturaTipo, name="factura_tipo", values_callable=lambda e: [m.value for m in e]),
        default=FacturaTipo.COTIZACION,
        nullable=False,
        index=True,
    )
    estado = Column(
        SAEnum(FacturaEstado, name="factura_estado", values_callable=lambda e: [m.value for m in e]),
        default=FacturaEstado.EMITIDA,
        nullable=False,
        index=True,
    )

    # datos del cliente copiados al documento
    cliente_nombre = Column(String, nullable=False, index=True)
    cliente_identificacion = Column(String, nullable=True)
    cliente_email = Column(String, nullable=True)
    cliente_telefono = Column(String, nullable=True)
    cliente_direccion = Column(String, nullable=True)
    notas = Column(Text, nullable=True)

    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    impuesto = Column(Numeric(12, 2), nullable=False, default=0)
    descuento = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    anticipo = Column(Numeric(12, 2), nullable=False, default=0)
    saldo = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    items = relationship(
        "FacturaItem",
        back_populates="factura",
        order_by="FacturaItem.id",
        cascade="all, delete-orphan",
    )


class FacturaItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True)
    factura_id = Column(Integer, ForeignKey("invoices.id"), index=True, nullable=False)
    inventario_item_id = Column(Integer, ForeignKey("inventario_items.id"), index=True, nullable=True)

    descripcion = Column(String, nullable=False)
    cantidad = Column(Integer, nullable=False)
    precio_unitario = Column(Numeric(12, 2), nullable=False)
    impuesto_porcentaje = Column(Numeric(5, 2), nullable=False, default=0)
    descuento_porcentaje = Column(Numeric(5, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)

    factura = relationship("Factura", back_populates="items")
