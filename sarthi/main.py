"""Sarthi API - Main FastAPI Application."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sarthi import __version__
from sarthi.api.deps import get_coordinator
from sarthi.api.routes import chat, health, users
from sarthi.core.config import settings
from sarthi.core.exceptions import SarthiException


# Configure logging: JSON for production, text for local development
def _configure_logging() -> None:
    """Set up logging based on LOG_FORMAT and LOG_LEVEL settings.

    json: Structured JSON via python-json-logger.
    text: Human-readable format.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicate output
    root_logger.handlers.clear()

    handler = logging.StreamHandler()

    if settings.LOG_FORMAT == "json":
        from pythonjsonlogger.json import JsonFormatter

        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "service",
            },
            static_fields={"app": "sarthi-api"},
        )
        handler.setFormatter(formatter)
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


_configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> Any:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting Sarthi API...")

    if settings.llm_configured:
        logger.info("LLM backend configured - model-backed stages enabled")
    else:
        logger.warning("LLM_API_KEY not configured - using template fallbacks only")

    coordinator = get_coordinator()
    yield
    logger.info("Shutting down Sarthi API...")
    await coordinator.aclose()


app = FastAPI(
    title="Sarthi API",
    description="Conversation pipeline for the Sarthi wellness companion",
    version=__version__,
    lifespan=lifespan,
)

CORS_ORIGINS = settings.cors_origins_list
logger.info("CORS allowed origins: %s", CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(health.router, prefix="/api/v1")


@app.get("/", tags=["system"])
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": "Sarthi API",
        "version": __version__,
        "description": "AI wellness companion conversation pipeline",
    }


@app.exception_handler(SarthiException)
async def sarthi_exception_handler(request: Request, exc: SarthiException) -> JSONResponse:
    """Handle Sarthi-specific exceptions.

    Args:
        request: The incoming request.
        exc: The Sarthi exception.

    Returns:
        JSON error response with consistent format.
    """
    request_id = str(uuid.uuid4())
    logger.warning(
        "Sarthi exception occurred",
        extra={
            "code": exc.code,
            "status_code": exc.status_code,
            "request_id": request_id,
            "path": request.url.path,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "code": exc.code,
            "request_id": request_id,
        },
    )
