from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.config import settings
from core.database import init_db
from core.logging_config import setup_logging, logger

# Routers
from core.routes import routes_health
from modules.devoluciones.routes.routes_devoluciones import router as devoluciones_router
from modules.reparaciones.routes.routes_reparaciones import router as reparaciones_router
from modules.facturacion.routes.routes_facturacion import router as facturacion_router
from modules.productos.routes.routes_productos import router as productos_router
from modules.catalogo.routes.routes_catalogo import (
    clientes_router,
    inventario_router,
    proveedores_router,
)

from core.middleware.request_context import request_context_middleware


# ============================
#   APP
# ============================

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


setup_logging()

app = FastAPI(
    title="Taller – API admin",
    version="1.0.0",
    debug=settings.APP_DEBUG,
    lifespan=lifespan,
)

logger.info("Taller API iniciada env=%s", settings.APP_ENV)


# ============================
#   MIDDLEWARE + ROUTERS
# ============================

app.middleware("http")(request_context_middleware)

app.include_router(routes_health.router)
app.include_router(devoluciones_router)
app.include_router(reparaciones_router)
app.include_router(facturacion_router)
app.include_router(clientes_router)
app.include_router(proveedores_router)
app.include_router(inventario_router)
app.include_router(productos_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.APP_PORT,
        reload=settings.APP_DEBUG,
    )
