# core/models/enums.py
from __future__ import annotations
import enum


class DevolucionEstado(str, enum.Enum):
    REPORTADA = "reportada"
    REVISION_TECNICA = "revision_tecnica"
    ENTREGADA_PROVEEDOR = "entregada_proveedor"
    ESPERA_REGRESO = "espera_regreso"
    DEVUELTA_REEMPLAZO = "devuelta_reemplazo"
    DEVUELTA_REEMBOLSO = "devuelta_reembolso"
    REPARADA_ENTREGADA = "reparada_entregada"
    RECHAZADA = "rechazada"
    CERRADA = "cerrada"


class AlertaSla(str, enum.Enum):
    VENCIDA = "overdue"
    H24 = "24h"
    H72 = "72h"


class ReparacionEstado(str, enum.Enum):
    INGRESADO = "ingresado"
    DIAGNOSTICO = "diagnostico"
    EN_PROCESO = "en_proceso"
    LISTO = "listo"
    ENTREGADO = "entregado"


class FacturaTipo(str, enum.Enum):
    FACTURA = "factura"
    COTIZACION = "cotizacion"


class FacturaEstado(str, enum.Enum):
    BORRADOR = "borrador"
    EMITIDA = "emitida"
    PAGADA = "pagada"


class ProductoCategoria(str, enum.Enum):
    NUEVOS = "nuevos"
    USADOS = "usados"
    ACCESORIOS = "accesorios"
