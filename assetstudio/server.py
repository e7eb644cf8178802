"""FastAPI server for Asset Studio."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from assetstudio import env_config
from assetstudio.errors import (
    CorruptDataError,
    NotFoundError,
    UnsupportedProviderError,
    ValidationError,
)
from assetstudio.models.dto import HealthResponse
from . import api
from .api import router as api_router

logger = logging.getLogger(__name__)


def configure_logging(level: str = env_config.LOG_LEVEL):
    """Configure root logging once for the server process."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for app startup/shutdown."""
    store = api.get_store()
    await asyncio.to_thread(store.initialize)
    await asyncio.to_thread(api.get_prompt_repo().initialize)
    logger.info("Asset Studio started with data directory %s", store.data_dir)

    yield

    await api.get_generation_service().shutdown()


app = FastAPI(
    title="Asset Studio API",
    description="REST API for asset projects, simulated generation jobs and prompt tooling",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "errors": [e.to_dict() for e in exc.errors]},
    )


@app.exception_handler(UnsupportedProviderError)
async def unsupported_provider_handler(request: Request, exc: UnsupportedProviderError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(CorruptDataError)
async def corrupt_data_handler(request: Request, exc: CorruptDataError):
    logger.error("Unrecoverable document %s: %s", exc.path, exc.reason)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Include routers
app.include_router(api_router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    store = api.get_store()
    return HealthResponse(
        status="ok",
        timestamp=store.get_current_timestamp(),
        data_dir=str(store.data_dir),
    )
