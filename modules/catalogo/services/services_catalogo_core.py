# modules/catalogo/services/services_catalogo_core.py
"""
Core de dominio – Catálogo del taller (clientes, proveedores, repuestos)

✅ Reglas
- Errores de dominio tipados (no HTTP aquí)
- Helpers de normalización compartidos por los services del módulo
- Escritura en una transacción sobre la sesión del request
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.logging_config import logger


# =========================================================
# EXCEPCIONES DE DOMINIO
# =========================================================

class CatalogoDomainError(Exception):
    """Error de dominio para el módulo Catálogo."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message


class CatalogoValidationError(CatalogoDomainError):
    pass


class CatalogoNotFound(CatalogoDomainError):
    pass


class CatalogoStorageError(CatalogoDomainError):
    pass


# =========================================================
# HELPERS
# =========================================================

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def strip_or_none(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def requerir_texto(value: Any, campo: str) -> str:
    v = strip_or_none(value)
    if v is None:
        raise CatalogoValidationError(f"El campo '{campo}' es obligatorio.")
    return v


def normalizar_email(value: Any) -> str | None:
    email = strip_or_none(value)
    if email is None:
        return None
    if not _EMAIL_RE.match(email):
        raise CatalogoValidationError(f"Email inválido: {email}")
    return email.lower()


def entero_no_negativo(value: Any, campo: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError) as e:
        raise CatalogoValidationError(f"'{campo}' debe ser un entero.") from e
    if v < 0:
        raise CatalogoValidationError(f"'{campo}' no puede ser negativo.")
    return v


def monto_no_negativo(value: Any, campo: str) -> Decimal:
    try:
        v = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise CatalogoValidationError(f"'{campo}' debe ser numérico.") from e
    if v < 0:
        raise CatalogoValidationError(f"'{campo}' no puede ser negativo.")
    return v


def monto(value: Any) -> float:
    return float(value or 0)


# =========================================================
# TRANSACCIÓN
# =========================================================

@contextmanager
def transaccion(db: Session, *, evento: str) -> Iterator[None]:
    try:
        yield
        db.commit()
    except CatalogoDomainError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("[CATALOGO] %s error=%s", evento, e)
        raise CatalogoStorageError("Error de persistencia en catálogo.") from e
    except Exception:
        db.rollback()
        raise
