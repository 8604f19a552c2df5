# core/security.py
"""
Seguridad – API admin del taller

✔ Token por header `x-api-key` o `Authorization: Bearer <token>`
✔ Comparación en tiempo constante
✔ Dependencia FastAPI: require_admin_dep
"""

from __future__ import annotations

import secrets

from fastapi import Request, HTTPException, status

from core.config import settings


def _token_from_request(request: Request) -> str | None:
    api_key = request.headers.get("x-api-key")
    if api_key:
        return api_key.strip()

    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()

    return None


# =========================================================
# DEPENDENCIES (FASTAPI)
# =========================================================

def require_admin_dep(request: Request) -> None:
    expected = settings.ADMIN_API_KEY
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_API_KEY no configurada.",
        )

    token = _token_from_request(request)
    if not token or not secrets.compare_digest(token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Acceso no autorizado.",
        )
