"""ZenRadar crawler -- FastAPI Application Entry Point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from zenradar import __version__
from zenradar.api.v1.router import api_v1_router
from zenradar.config import settings
from zenradar.core.exceptions import SiteNotFoundError, ZenRadarException
from zenradar.core.logging import configure_logging
from zenradar.db.session import engine, init_db
from zenradar.schemas import ErrorDetail, ErrorResponse
from zenradar.scrapers.factory import get_parser_factory

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("server_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    if settings.STORE_BACKEND == "sql":
        try:
            await init_db()
            logger.info("database_tables_verified")
        except Exception as e:
            logger.error("database_init_failed", error=str(e), exc_info=True)

    factory = get_parser_factory()
    logger.info("parsers_ready", specialized=factory.get_registered_sites())

    yield

    logger.info("server_stopping")
    await engine.dispose()


app = FastAPI(
    title="ZenRadar Crawler API",
    description="Matcha shop stock and price tracking crawler",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


@app.exception_handler(ZenRadarException)
async def zenradar_exception_handler(request: Request, exc: ZenRadarException):
    status_code = 404 if isinstance(exc, SiteNotFoundError) else 500
    logger.error("request_failed", path=request.url.path, error=exc.message)
    body = ErrorResponse(error=ErrorDetail(code=type(exc).__name__, message=exc.message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "ZenRadar Crawler API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
