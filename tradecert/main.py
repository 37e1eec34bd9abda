from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from tradecert.api.v1.router import api_router
from tradecert.core.errors import DomainError
from tradecert.core.logging import setup_logging
from tradecert.db.bootstrap import run_migrations_and_seed

setup_logging()

api = FastAPI(
    title="Trader Certification API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    swagger_ui_parameters={"displayRequestDuration": True, "persistAuthorization": True},
)

api.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# /metrics (Prometheus)
Instrumentator().instrument(api).expose(api, include_in_schema=False, should_gzip=True)

api.include_router(api_router, prefix="/api/v1")

@api.get("/healthz", tags=["health"])
def healthz():
    return {"status": "ok"}

@api.on_event("startup")
def startup():
    run_migrations_and_seed()

@api.exception_handler(DomainError)
def handle_domain_error(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("{} {} -> {} {}", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.warning("{} {} -> {} {}", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@api.exception_handler(IntegrityError)
def handle_integrity_error(request: Request, exc: IntegrityError):
    logger.warning("integrity error on {} {}: {}", request.method, request.url.path, getattr(exc, "orig", exc))
    return JSONResponse(
        status_code=409,
        content={"code": "UNIQUE_VIOLATION", "message": "Duplicate record."},
    )

@api.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.opt(exception=exc).error("unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "Internal server error."},
    )
