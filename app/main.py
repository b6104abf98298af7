"""
WISP Manager - Punto de entrada FastAPI
Back office de cortes: morosos, suspensión/reactivación y pagos.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.config import get_settings
from app.database import engine, Base
from app.routers.common import ReasonedHTTPException
from app.services.errors import CortesError

# Routers
from app.routers.cortes import router as cortes_router
from app.routers.clients import router as clients_router
from app.routers.payments import router as payments_router
from app.routers.dashboard import router as dashboard_router

# Importar modelos para que se registren
from app.models import *  # noqa

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("main")

# Status HTTP por código de error, para errores que ningún router tradujo
ERROR_STATUS = {
    "client_not_found": 404,
    "illegal_transition": 409,
    "device_not_bound": 422,
    "invalid_filter": 422,
    "invalid_signup_date": 422,
    "scan_cancelled": 499,
    "controller_unavailable": 502,
    "controller_error": 502,
    "repository_unavailable": 503,
    "controller_timeout": 504,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Crea las tablas al iniciar (en desarrollo). En prod usar Alembic."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} iniciado")
    yield
    await engine.dispose()
    logger.info(f"{settings.APP_NAME} detenido")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Cortes y morosos para WISP prepago",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReasonedHTTPException)
async def reasoned_http_exception_handler(request: Request, exc: ReasonedHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "reason": exc.reason})


@app.exception_handler(CortesError)
async def cortes_error_handler(request: Request, exc: CortesError):
    status_code = ERROR_STATUS.get(exc.code, 500)
    logger.warning(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "reason": exc.code})


# Registrar routers
app.include_router(cortes_router, prefix="/api/v1")
app.include_router(clients_router, prefix="/api/v1")
app.include_router(payments_router, prefix="/api/v1")
app.include_router(dashboard_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs"
    }
