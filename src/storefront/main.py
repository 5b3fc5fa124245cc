# src/storefront/main.py
"""
Storefront Service - Main FastAPI Application
"""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
from sqlalchemy import text
import logging

from storefront import __version__
from storefront.common_logging import setup_logging
from storefront.common_instrumentation import (
    instrument_fastapi, instrument_sqlalchemy, setup_opentelemetry, shutdown_opentelemetry
)
from storefront.api import order_routes, product_routes, user_routes
from storefront.db import database
from storefront.db.database import init_database, create_tables
from storefront.errors import StorefrontError
from storefront.models.schemas import HealthResponse
from storefront.config import settings

# Setup logging
setup_logging(
    service_name=settings.service_name,
    log_level=settings.log_level,
    log_format=settings.log_format
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    # Startup
    logger.info(f"Starting {settings.service_name}")
    logger.info(f"Environment: {settings.environment}")

    tracer_provider = setup_opentelemetry(
        service_name=settings.otel_service_name or settings.service_name,
        otlp_endpoint=settings.otel_endpoint,
        service_version=__version__,
        environment=settings.environment,
        enabled=settings.otel_enabled
    )

    try:
        engine = init_database(settings.database_url)
        create_tables()
        logger.info("Database initialized successfully")

        if settings.otel_enabled:
            instrument_sqlalchemy(engine)

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    logger.info(f"{settings.service_name} started successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.service_name}")
    if database.engine is not None:
        database.engine.dispose()
    shutdown_opentelemetry(tracer_provider)


app = FastAPI(
    title="Storefront Service",
    description="School-supplies storefront: catalog, checkout, order tracking and ratings",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.otel_enabled:
    instrument_fastapi(app)

app.include_router(user_routes.router)
app.include_router(product_routes.router)
app.include_router(order_routes.router)


def _probe(status: str, **extra) -> dict:
    return {
        "status": status,
        "service": settings.service_name,
        "version": __version__,
        "timestamp": datetime.utcnow(),
        **extra
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness probe; does not touch the database"""
    return _probe("healthy")


@app.get("/ready", response_model=HealthResponse)
def readiness_check():
    """Readiness probe; the catalog tables must be reachable"""
    try:
        with database.SessionLocal() as db:
            db.execute(text("SELECT 1 FROM products LIMIT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content=jsonable_encoder(_probe("not_ready", database="disconnected"))
        )

    return _probe("ready", database="connected")


@app.get("/")
async def root():
    """Service index"""
    return {
        "service": settings.service_name,
        "version": __version__,
        "api": API_PREFIX,
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready"
    }


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    """Render domain errors with their own status code"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": exc.__class__.__name__
        }
    )


def run():
    """Console entry point"""
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
