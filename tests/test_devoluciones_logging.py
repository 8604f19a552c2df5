import json
import logging

import main  # noqa: F401  (configura logging antes de que caplog instale su handler)

from core.logging_config import AUDIT_LOGGER_NAME

from modules.devoluciones.services.services_devoluciones_core import MissingSla
from modules.devoluciones.services.services_devoluciones_logging import (
    log_devolucion_audit,
    log_devolucion_error,
)

from conftest import AUTH


def _payloads(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == AUDIT_LOGGER_NAME]


def test_error_de_dominio_en_json(caplog):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)

    log_devolucion_error(
        "cambiar_estado_rechazado",
        devolucion_id=7,
        error=MissingSla("Debes definir un SLA cuando se entrega al proveedor."),
    )

    p = _payloads(caplog)[-1]
    assert p["event"] == "devoluciones.cambiar_estado_rechazado"
    assert p["type"] == "error"
    assert p["devolucion_id"] == 7
    assert p["error_type"] == "MissingSla"
    assert p["error_message"].startswith("Debes definir un SLA")
    assert p["request_id"] is None


def test_payload_no_serializable_no_rompe(caplog):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)

    log_devolucion_audit("devolucion_cerrada", devolucion_id=1, usuario="Ana", extra=object())

    p = _payloads(caplog)[-1]
    assert p["type"] == "audit"
    assert p["usuario"] == "Ana"
    assert isinstance(p["extra"], str)


def test_request_id_en_respuesta_y_en_log(client, caplog):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)

    r = client.post(
        "/devoluciones",
        json={
            "productoNombre": "Pantalla X",
            "motivo": "no enciende",
            "primerMovimiento": {
                "tipo": "recepcion_taller",
                "entregadoPor": "Cliente",
                "recibidoPor": "Técnico",
            },
        },
        headers={**AUTH, "X-Request-ID": "req-123"},
    )

    assert r.status_code == 201
    assert r.headers["x-request-id"] == "req-123"

    creadas = [p for p in _payloads(caplog) if p["event"] == "devoluciones.devolucion_creada"]
    assert creadas[-1]["request_id"] == "req-123"
    assert creadas[-1]["codigo"] == r.json()["codigo"]


def test_sql_de_sqlalchemy_no_se_vuelca_sin_debug():
    assert logging.getLogger("sqlalchemy.engine").getEffectiveLevel() == logging.WARNING
