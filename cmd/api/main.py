"""
FastAPI Application Entry Point.

REST API server for the renovation configurator.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from internal.config.settings import get_settings
from internal.infrastructure.catalog_api.client import CatalogApiClient
from internal.infrastructure.catalog_api.source import ApiCatalogSource
from internal.infrastructure.redis.cache import CatalogCache
from internal.transport.http.middleware import MetricsMiddleware, RequestIDMiddleware
from internal.transport.http.v1.handlers import router, set_dependencies, system_router
from internal.usecase.catalog_store import CatalogStore
from internal.usecase.configurator import ConfiguratorService
from pkg.logger.logger import get_logger, setup_logging
from pkg.resilience.circuit_breaker import CircuitBreaker


# Load environment variables
load_dotenv()

settings = get_settings()

# Setup logging
setup_logging(
    level=settings.log_level,
    json_format=settings.log_format == "json",
)

logger = get_logger(__name__)


# Global resources
catalog_client: Optional[CatalogApiClient] = None
catalog_cache: Optional[CatalogCache] = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of resources.
    """
    global catalog_client, catalog_cache

    logger.info("Starting Configurator API...")

    # Initialize Redis cache
    if settings.redis_url:
        try:
            catalog_cache = CatalogCache(
                redis_url=settings.redis_url,
                default_ttl=settings.catalog_cache_ttl_seconds,
            )
            await catalog_cache.connect()
        except Exception as e:
            logger.warning("Failed to connect to Redis, caching disabled", error=str(e))
            catalog_cache = None
    else:
        logger.info("REDIS_URL not set, caching disabled")

    # Initialize upstream client
    breaker = CircuitBreaker(
        failure_threshold=settings.circuit_failure_threshold,
        recovery_timeout=settings.circuit_recovery_timeout_seconds,
        name="catalog-api",
    )
    catalog_client = CatalogApiClient(
        base_url=settings.catalog_api_url,
        token=settings.catalog_api_token,
        timeout=settings.catalog_api_timeout_seconds,
        breaker=breaker,
    )

    # Create store and services
    store = CatalogStore(ApiCatalogSource(catalog_client, cache=catalog_cache))
    configurator = ConfiguratorService(
        store=store,
        coefficient_names=settings.market_coefficient_names(),
        session_ttl_seconds=settings.session_ttl_seconds,
    )

    # Initial catalog load; the API stays up and serves 503 until a refresh succeeds
    try:
        await store.refresh()
    except Exception as e:
        logger.warning("Initial catalog load failed", error=str(e))

    set_dependencies(configurator=configurator, store=store)

    logger.info("Configurator API started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Configurator API...")

    set_dependencies(configurator=None, store=None)

    if catalog_client:
        await catalog_client.close()

    if catalog_cache:
        await catalog_cache.disconnect()

    logger.info("Configurator API shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Configurator API",
    description="Renovation materials configurator: category drill-down, cart and pricing",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware
app.add_middleware(MetricsMiddleware)

# Request ID middleware (outermost, so metrics and handlers see the ID)
app.add_middleware(RequestIDMiddleware)


# Include routers
app.include_router(router)
app.include_router(system_router)


# Root endpoint
@app.get("/")
async def root() -> dict:
    """Root endpoint with service information."""
    return {
        "service": "configurator-service",
        "version": "1.0.0",
        "status": "running",
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
    )
