# modules/facturacion/services/services_facturacion.py
"""
Facturación (facturas y cotizaciones)

✅ Reglas
- Totales calculados en el servidor (calcular_totales es pura)
- Consecutivo DCYYMMDD-NNNN (secuencia transaccional)
- Cabecera + ítems en una sola transacción
- saldo = max(total - anticipo, 0), se recalcula al cambiar el anticipo
- Errores de dominio tipados (no HTTP aquí)
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.logging_config import logger
from core.models import Factura, FacturaItem, InventarioItem
from core.models.enums import FacturaEstado, FacturaTipo
from core.models.time import iso_or_none, utcnow
from core.services.services_secuencias import siguiente_consecutivo_factura

from modules.catalogo.services.services_catalogo_core import CatalogoDomainError, normalizar_email


# =========================================================
# EXCEPCIONES DE DOMINIO
# =========================================================

class FacturacionDomainError(Exception):
    """Error de dominio para el módulo Facturación."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message


class FacturacionValidationError(FacturacionDomainError):
    pass


class FacturaNotFound(FacturacionDomainError):
    pass


class FacturacionStorageError(FacturacionDomainError):
    pass


CENTAVOS = Decimal("0.01")
CIEN = Decimal("100")
CERO = Decimal("0")

CAMPOS_CLIENTE = (
    "cliente_identificacion",
    "cliente_telefono",
    "cliente_direccion",
)


# =========================================================
# HELPERS
# =========================================================

def _strip_or_none(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def _decimal(value: Any, campo: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise FacturacionValidationError(f"'{campo}' debe ser numérico.") from e


def _no_negativo(value: Any, campo: str) -> Decimal:
    if value is None or value == "":
        return CERO
    v = _decimal(value, campo)
    if v < 0:
        raise FacturacionValidationError(f"'{campo}' no puede ser negativo.")
    return v


def _porcentaje(value: Any, campo: str) -> Decimal:
    v = _no_negativo(value, campo)
    if v > CIEN:
        raise FacturacionValidationError(f"'{campo}' debe estar entre 0 y 100.")
    return v


def _redondear(v: Decimal) -> Decimal:
    return v.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def _enum(enum_cls, value: Any, etiqueta: str):
    if isinstance(value, enum_cls):
        return value
    raw = (str(value) if value is not None else "").strip().lower()
    try:
        return enum_cls(raw)
    except ValueError as e:
        raise FacturacionValidationError(f"{etiqueta} inválido: '{value}'.") from e


def _validar_item(data: Any, posicion: int) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise FacturacionValidationError(f"Ítem {posicion}: formato inválido.")

    descripcion = _strip_or_none(data.get("descripcion"))
    if descripcion is None:
        raise FacturacionValidationError(f"Ítem {posicion}: la descripción es obligatoria.")

    try:
        cantidad = int(data.get("cantidad"))
    except (TypeError, ValueError) as e:
        raise FacturacionValidationError(f"Ítem {posicion}: 'cantidad' debe ser un entero.") from e
    if cantidad <= 0:
        raise FacturacionValidationError(f"Ítem {posicion}: 'cantidad' debe ser mayor a 0.")

    inventario_item_id = data.get("inventario_item_id")
    if inventario_item_id is not None:
        try:
            inventario_item_id = int(inventario_item_id)
        except (TypeError, ValueError) as e:
            raise FacturacionValidationError(f"Ítem {posicion}: repuesto inválido.") from e
        if inventario_item_id <= 0:
            raise FacturacionValidationError(f"Ítem {posicion}: repuesto inválido.")

    return {
        "descripcion": descripcion,
        "inventario_item_id": inventario_item_id,
        "cantidad": cantidad,
        "precio_unitario": _no_negativo(data.get("precio_unitario"), "precio_unitario"),
        "impuesto_porcentaje": _porcentaje(data.get("impuesto_porcentaje"), "impuesto_porcentaje"),
        "descuento_porcentaje": _porcentaje(data.get("descuento_porcentaje"), "descuento_porcentaje"),
    }


@contextmanager
def _transaccion(db: Session, *, evento: str, factura_id: int | None = None) -> Iterator[None]:
    try:
        yield
        db.commit()
    except FacturacionDomainError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("[FACTURACION] %s factura_id=%s error=%s", evento, factura_id, e)
        raise FacturacionStorageError("Error de persistencia al guardar la factura.") from e
    except Exception:
        db.rollback()
        raise


def _obtener_factura_segura(db: Session, factura_id: int, *, for_update: bool = False) -> Factura:
    stmt = (
        select(Factura)
        .where(Factura.id == int(factura_id))
        .options(selectinload(Factura.items))
    )
    if for_update:
        stmt = stmt.with_for_update()
    factura = db.execute(stmt).scalar_one_or_none()
    if factura is None:
        raise FacturaNotFound("Factura no encontrada.")
    return factura


# =========================================================
# TOTALES (puro)
# =========================================================

def calcular_totales(items: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Por línea:
      base      = cantidad * precio_unitario
      descuento = base * descuento% / 100
      impuesto  = (base - descuento) * impuesto% / 100
      total     = base - descuento + impuesto

    Los acumulados se suman sin redondear; cada valor devuelto va a 2 decimales.
    """
    lineas: list[dict[str, Any]] = []
    subtotal = descuento = impuesto = CERO

    for item in items:
        base = int(item["cantidad"]) * _decimal(item["precio_unitario"], "precio_unitario")
        descuento_pct = _decimal(item.get("descuento_porcentaje", 0), "descuento_porcentaje")
        impuesto_pct = _decimal(item.get("impuesto_porcentaje", 0), "impuesto_porcentaje")

        descuento_valor = base * descuento_pct / CIEN
        impuesto_valor = (base - descuento_valor) * impuesto_pct / CIEN

        lineas.append(
            {
                **item,
                "descuento_valor": _redondear(descuento_valor),
                "impuesto_valor": _redondear(impuesto_valor),
                "total": _redondear(base - descuento_valor + impuesto_valor),
            }
        )
        subtotal += base
        descuento += descuento_valor
        impuesto += impuesto_valor

    return {
        "subtotal": _redondear(subtotal),
        "descuento": _redondear(descuento),
        "impuesto": _redondear(impuesto),
        "total": _redondear(subtotal - descuento + impuesto),
        "items": lineas,
    }


def calcular_saldo(total: Decimal, anticipo: Decimal) -> Decimal:
    return max(_decimal(total, "total") - _decimal(anticipo, "anticipo"), CERO)


# =========================================================
# PROYECCIONES
# =========================================================

def serializar_item(i: FacturaItem) -> dict[str, Any]:
    return {
        "id": i.id,
        "inventario_item_id": i.inventario_item_id,
        "descripcion": i.descripcion,
        "cantidad": i.cantidad,
        "precio_unitario": float(i.precio_unitario or 0),
        "impuesto_porcentaje": float(i.impuesto_porcentaje or 0),
        "descuento_porcentaje": float(i.descuento_porcentaje or 0),
        "total": float(i.total or 0),
    }


def serializar_factura(f: Factura, *, con_items: bool = False) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": f.id,
        "consecutivo": f.consecutivo,
        "tipo": _enum(FacturaTipo, f.tipo, "Tipo").value,
        "estado": _enum(FacturaEstado, f.estado, "Estado").value,
        "cliente_nombre": f.cliente_nombre,
        "cliente_identificacion": f.cliente_identificacion,
        "cliente_email": f.cliente_email,
        "cliente_telefono": f.cliente_telefono,
        "cliente_direccion": f.cliente_direccion,
        "notas": f.notas,
        "subtotal": float(f.subtotal or 0),
        "impuesto": float(f.impuesto or 0),
        "descuento": float(f.descuento or 0),
        "total": float(f.total or 0),
        "anticipo": float(f.anticipo or 0),
        "saldo": float(f.saldo or 0),
        "items_count": len(f.items),
        "created_at": iso_or_none(f.created_at),
        "updated_at": iso_or_none(f.updated_at),
    }
    if con_items:
        out["items"] = [serializar_item(i) for i in f.items]
    return out


# =========================================================
# CONSULTAS
# =========================================================

def listar_facturas(
    db: Session,
    *,
    q: str | None = None,
    estado: str | None = None,
    tipo: str | None = None,
) -> list[dict[str, Any]]:
    """Más reciente primero. estado/tipo desconocidos se ignoran; q busca en el nombre del cliente."""
    stmt = select(Factura).options(selectinload(Factura.items))

    if tipo:
        try:
            stmt = stmt.where(Factura.tipo == _enum(FacturaTipo, tipo, "Tipo"))
        except FacturacionValidationError:
            logger.debug("[FACTURACION] filtro de tipo ignorado: %s", tipo)

    if estado:
        try:
            stmt = stmt.where(Factura.estado == _enum(FacturaEstado, estado, "Estado"))
        except FacturacionValidationError:
            logger.debug("[FACTURACION] filtro de estado ignorado: %s", estado)

    texto = _strip_or_none(q)
    if texto:
        stmt = stmt.where(func.lower(Factura.cliente_nombre).like(f"%{texto.lower()}%"))

    stmt = stmt.order_by(Factura.created_at.desc(), Factura.id.desc())
    return [serializar_factura(f) for f in db.execute(stmt).scalars().all()]


def obtener_factura(db: Session, factura_id: int) -> dict[str, Any]:
    return serializar_factura(_obtener_factura_segura(db, factura_id), con_items=True)


# =========================================================
# ESCRITURA
# =========================================================

def crear_factura(db: Session, *, data: dict[str, Any]) -> dict[str, Any]:
    """
    data: tipo?, cliente_nombre (obligatorio), datos de contacto?, notas?,
    anticipo?, items[] (al menos uno)
    """
    tipo = _enum(FacturaTipo, data.get("tipo") or FacturaTipo.COTIZACION, "Tipo")

    cliente_nombre = _strip_or_none(data.get("cliente_nombre"))
    if cliente_nombre is None:
        raise FacturacionValidationError("El nombre del cliente es obligatorio.")

    try:
        cliente_email = normalizar_email(data.get("cliente_email"))
    except CatalogoDomainError as e:
        raise FacturacionValidationError(e.message) from e

    items_in = data.get("items") or []
    if not items_in:
        raise FacturacionValidationError("La factura debe tener al menos un ítem.")
    items = [_validar_item(item, n) for n, item in enumerate(items_in, start=1)]

    anticipo = _no_negativo(data.get("anticipo"), "anticipo")
    totales = calcular_totales(items)

    repuestos = {i["inventario_item_id"] for i in items if i["inventario_item_id"] is not None}

    with _transaccion(db, evento="crear_factura_failed"):
        if repuestos:
            existentes = set(
                db.execute(select(InventarioItem.id).where(InventarioItem.id.in_(repuestos))).scalars().all()
            )
            faltantes = sorted(repuestos - existentes)
            if faltantes:
                raise FacturaNotFound(f"Repuesto no encontrado: {faltantes[0]}.")

        factura = Factura(
            consecutivo=siguiente_consecutivo_factura(db),
            tipo=tipo,
            estado=FacturaEstado.EMITIDA,
            cliente_nombre=cliente_nombre,
            cliente_email=cliente_email,
            notas=_strip_or_none(data.get("notas")),
            subtotal=totales["subtotal"],
            impuesto=totales["impuesto"],
            descuento=totales["descuento"],
            total=totales["total"],
            anticipo=anticipo,
            saldo=calcular_saldo(totales["total"], anticipo),
            **{campo: _strip_or_none(data.get(campo)) for campo in CAMPOS_CLIENTE},
        )
        db.add(factura)
        db.flush()

        for linea in totales["items"]:
            db.add(
                FacturaItem(
                    factura_id=factura.id,
                    inventario_item_id=linea["inventario_item_id"],
                    descripcion=linea["descripcion"],
                    cantidad=linea["cantidad"],
                    precio_unitario=linea["precio_unitario"],
                    impuesto_porcentaje=linea["impuesto_porcentaje"],
                    descuento_porcentaje=linea["descuento_porcentaje"],
                    total=linea["total"],
                )
            )
        factura_id = factura.id
        consecutivo = factura.consecutivo

    logger.info(
        "[FACTURACION] creada factura_id=%s consecutivo=%s total=%s",
        factura_id,
        consecutivo,
        totales["total"],
    )
    return obtener_factura(db, factura_id)


def actualizar_estado_factura(
    db: Session,
    *,
    factura_id: int,
    estado: str | FacturaEstado,
    notas: str | None = None,
    anticipo: Any = None,
) -> dict[str, Any]:
    """
    Cambia el estado. notas vacías conservan las actuales;
    un anticipo nuevo recalcula el saldo contra el total guardado.
    """
    destino = _enum(FacturaEstado, estado, "Estado")
    nuevo_anticipo = None if anticipo is None else _no_negativo(anticipo, "anticipo")

    with _transaccion(db, evento="actualizar_estado_factura_failed", factura_id=factura_id):
        factura = _obtener_factura_segura(db, factura_id, for_update=True)

        factura.estado = destino
        texto = _strip_or_none(notas)
        if texto is not None:
            factura.notas = texto
        if nuevo_anticipo is not None:
            factura.anticipo = nuevo_anticipo
        factura.saldo = calcular_saldo(factura.total, factura.anticipo)
        factura.updated_at = utcnow()

    logger.info("[FACTURACION] estado factura_id=%s estado=%s", factura_id, destino.value)
    return obtener_factura(db, factura_id)
