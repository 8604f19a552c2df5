from core.models.enums import DevolucionEstado, AlertaSla

from .casos import Devolucion
from .movimientos import DevolucionMovimiento
from .historial import DevolucionHistorial
from .adjuntos import DevolucionAdjunto


__all__ = [
    "DevolucionEstado", "AlertaSla",
    "Devolucion",
    "DevolucionMovimiento",
    "DevolucionHistorial",
    "DevolucionAdjunto",
]
