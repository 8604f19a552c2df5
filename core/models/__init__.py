# core/models/__init__.py
"""
Modelos ORM – Taller

✔ Estados con Enum controlado
✔ Timestamps UTC timezone-aware
✔ Devoluciones como agregado (caso + movimientos + historial + adjuntos)
✔ Facturas con totales persistidos (cabecera + ítems)
"""

from __future__ import annotations

from core.models.enums import (
    DevolucionEstado,
    AlertaSla,
    ReparacionEstado,
    FacturaTipo,
    FacturaEstado,
    ProductoCategoria,
)
from core.models.secuencias import Secuencia
from core.models.catalogo import Proveedor, Cliente, InventarioItem
from core.models.reparaciones import RepairTicket, RepairUpdate
from core.models.facturacion import Factura, FacturaItem
from core.models.productos import Producto
from core.models.devoluciones import (
    Devolucion,
    DevolucionMovimiento,
    DevolucionHistorial,
    DevolucionAdjunto,
)


__all__ = [
    "DevolucionEstado", "AlertaSla", "ReparacionEstado",
    "FacturaTipo", "FacturaEstado", "ProductoCategoria",
    "Secuencia",
    "Proveedor", "Cliente", "InventarioItem",
    "RepairTicket", "RepairUpdate",
    "Factura", "FacturaItem",
    "Producto",
    "Devolucion", "DevolucionMovimiento", "DevolucionHistorial", "DevolucionAdjunto",
]
