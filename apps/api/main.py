"""
Waste Sorting API - FastAPI application entry point

Thin HTTP surface over the waste matching engine:
- /api/v1/identify, /api/v1/identify/image: labels or a photo in, identification out
- /api/v1/catalog: manual catalog search
- /api/v1/recent: in-memory history
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from starlette.responses import Response

from apps.api.routers import catalog, identify
from packages.common.config import get_settings
from packages.common.database import sessionmanager

settings = get_settings()

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, settings.log_level)),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

VERSION = "0.1.0"
DOCS_ENABLED = settings.environment != "production"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("waste_api_starting",
                environment=settings.environment,
                catalog_table=settings.catalog_table,
                version=VERSION)

    await sessionmanager.init(settings.database_url)
    yield

    logger.info("waste_api_stopping")
    await sessionmanager.close()


app = FastAPI(
    title="Waste Sorting API",
    description="Identify waste items from AI vision labels and map them to disposal categories",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if DOCS_ENABLED else None,
    redoc_url="/redoc" if DOCS_ENABLED else None,
)

# Read-only public API, no cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    """Tag every log line of a request with its id (x-request-id or a fresh one)"""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("request_rejected", errors=exc.errors())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": request.headers.get("x-request-id"),
        },
    )


app.include_router(identify.router, prefix="/api/v1", tags=["Identification"])
app.include_router(catalog.router, prefix="/api/v1/catalog", tags=["Catalog"])


@app.get("/health", tags=["System"])
async def health_check():
    """Liveness plus catalog reachability (row count of the catalog table)"""
    try:
        async with sessionmanager.session() as session:
            result = await session.execute(text(f"SELECT count(*) FROM {settings.catalog_table}"))
            entries = result.scalar_one()
    except Exception as e:
        logger.error("catalog_unreachable", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "catalog": "unreachable", "error": str(e)},
        )

    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": VERSION,
        "catalog": {"table": settings.catalog_table, "entries": entries},
    }


@app.get("/metrics", tags=["System"])
async def metrics():
    """Prometheus metrics endpoint"""
    if not settings.metrics_enabled:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Metrics disabled"})
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/", tags=["System"])
async def root():
    return {
        "name": "Waste Sorting API",
        "version": VERSION,
        "identify": "/api/v1/identify",
        "docs": "/docs" if DOCS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "apps.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
