# core/models/catalogo.py
from __future__ import annotations

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Numeric
from sqlalchemy.orm import relationship

from core.database import Base
from core.models.time import utcnow


class Proveedor(Base):
    __tablename__ = "proveedores"

    id = Column(Integer, primary_key=True)

    nombre = Column(String, nullable=False, index=True)
    contacto = Column(String, nullable=True)
    email = Column(String, nullable=True)
    telefono = Column(String, nullable=True)
    direccion = Column(String, nullable=True)
    notas = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    items = relationship("InventarioItem", back_populates="proveedor")
    devoluciones = relationship("Devolucion", back_populates="proveedor")


class Cliente(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)

    nombre = Column(String, nullable=False, index=True)
    documento = Column(String, nullable=True, index=True)
    telefono = Column(String, nullable=True)
    email = Column(String, nullable=True)
    direccion = Column(String, nullable=True)
    notas = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    devoluciones = relationship("Devolucion", back_populates="cliente")
    reparaciones = relationship("RepairTicket", back_populates="cliente")


class InventarioItem(Base):
    """Repuesto / insumo del taller."""
    __tablename__ = "inventario_items"

    id = Column(Integer, primary_key=True)

    nombre = Column(String, nullable=False, index=True)
    categoria = Column(String, nullable=False, index=True)
    proveedor_id = Column(Integer, ForeignKey("proveedores.id"), index=True, nullable=True)

    stock_actual = Column(Integer, nullable=False, default=0)
    stock_minimo = Column(Integer, nullable=False, default=0)
    precio_compra = Column(Numeric(12, 2), nullable=False, default=0)
    precio_venta = Column(Numeric(12, 2), nullable=False, default=0)
    descripcion = Column(Text, nullable=True)

    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    proveedor = relationship("Proveedor", back_populates="items")
