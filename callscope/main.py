"""
FastAPI application entry point for the CallScope API.

This module configures logging and CORS, loads the schema registry once at startup
and registers the API routers.

The registry lives on app.state for the lifetime of the process. Endpoints receive
it through RegistryDep; only POST /schemas/reload replaces its contents.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callscope import __version__
from callscope.api import api_router
from callscope.core.config import get_settings
from callscope.services.registry import load_registry

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Load the schema registry (SCHEMA_REGISTRY_PATH, or the built-in schemas)
        - Log startup message

    A registry file that cannot be loaded stops startup.
    """
    logger.info("CallScope API starting")
    app.state.registry = load_registry(get_settings().schema_registry_path)
    logger.info(f"Schema registry ready with {len(app.state.registry)} schemas")

    yield

    logger.info("CallScope API shutting down")


# Create FastAPI application
app = FastAPI(
    title="CallScope API",
    version=__version__,
    description=(
        "Schema detection, row mapping and schema-driven analytics for call "
        "metadata imported from heterogeneous spreadsheets."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "CallScope API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "callscope.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
