# checkin/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from checkin.api.v1.router import api_router
from checkin.core.config import settings
from checkin.core.errors import CheckinError
from checkin.core.idempotency import IdempotencyMiddleware
from checkin.core.logging import setup_logging
from checkin.db.bootstrap import run_migrations

setup_logging()
logger = logging.getLogger(__name__)

api = FastAPI(
    title="Check-in de Presença - Sessões e Pontos",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    swagger_ui_parameters={"displayRequestDuration": True, "persistAuthorization": True},
)

api.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # ajuste para domínios específicos em produção
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
api.add_middleware(IdempotencyMiddleware)

# métricas /metrics (Prometheus)
Instrumentator().instrument(api).expose(api, include_in_schema=False, should_gzip=True)

api.include_router(api_router, prefix="/api/v1")


@api.get("/healthz", tags=["health"])
def healthz():
    return {"status": "ok"}


@api.on_event("startup")
def startup():
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        run_migrations()


@api.exception_handler(CheckinError)
def handle_checkin_error(request: Request, exc: CheckinError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@api.exception_handler(IntegrityError)
def handle_integrity_error(request: Request, exc: IntegrityError):
    logger.warning("integrity error on %s %s: %s", request.method, request.url.path, getattr(exc, "orig", exc))
    return JSONResponse(
        status_code=409,
        content={"code": "UNIQUE_VIOLATION", "message": "Registro duplicado.", "kind": "conflict",
                 "details": str(getattr(exc, "orig", exc))},
    )


@api.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "Erro interno.", "kind": "retry", "details": str(exc)},
    )
