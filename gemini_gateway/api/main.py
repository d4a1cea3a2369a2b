"""
FastAPI application entry point.

Wires the generation and health routers together, installs the JSON error
handlers, and manages the model manager's lifetime.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .routers import generate, health
from .settings import ServerSettings, config_path, load_config_file, load_server_settings
from gemini_gateway.models.manager import ModelManager

logger = logging.getLogger(__name__)

# Global application state
app_state = {}

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Loads the config, refuses to start when a provider credential is missing,
    and releases provider clients at shutdown.
    """
    load_dotenv()
    model_manager = ModelManager(config_path=config_path())
    # Raises MissingCredentialError, which aborts startup
    model_manager.validate_credentials()

    settings = load_server_settings(model_manager.config)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    app_state["model_manager"] = model_manager
    app_state["settings"] = settings
    logger.info(f"Gemini API server is running at http://localhost:{settings.port}")

    # Provider clients are released when the session closes
    with model_manager.session():
        yield  # Server runs here
        logger.info("Shutting down Gemini API server...")
    app_state.clear()


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=getattr(exc, "headers", None))

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client input errors, reported as 400 rather than 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    This approach allows for easy testing and configuration management.
    """
    if settings is None:
        settings = load_server_settings(load_config_file(config_path()))

    app = FastAPI(
        title="Gemini Gateway",
        description="HTTP gateway forwarding text prompts and uploaded media to a generative model",
        version=health.API_VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health.router, tags=["health"])
    app.include_router(generate.router, tags=["generate"])

    return app

# Create the FastAPI app instance
app = create_app()
