"""Replicate Bridge — FastAPI Application.

This module defines the HTTP surface of the bridge: the application factory,
all route handlers, the error translation layer and the ``main()`` CLI
function that launches uvicorn.

Architecture
------------
- **Runtime configuration** (credential, default model) lives in a
  :class:`~replicate_bridge.core.config.ConfigStore` on ``app.state``.  It is
  seeded from ``REPLICATE_API_TOKEN`` and changed through ``POST /config``;
  nothing is written to disk.
- **Replicate access** goes through one shared ``httpx.AsyncClient``
  (connection pool) opened in the lifespan and closed on shutdown.
- **Generation** is delegated to
  :class:`~replicate_bridge.core.prediction_manager.PredictionManager`.
- **Errors** raised by the core are instances of
  :class:`~replicate_bridge.core.errors.BridgeError` and are rendered by a
  single exception handler as ``{"error": "<message>"}`` with the error's
  status code.

Endpoints
---------
All paths are relative to ``BridgeConfig.mount_path``
(default ``/api/plugins/replicate``).

========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/health``                   Liveness and configuration status
GET       ``/info``                     Plugin descriptor
GET       ``/config``                   Current runtime configuration
POST      ``/config``                   Update credential / default model
GET       ``/models``                   Static model catalog
POST      ``/generate``                 Create, poll and normalize
GET       ``/prediction/{id}``          Raw prediction pass-through
POST      ``/prediction/{id}/cancel``   Cancel a running prediction
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    replicate-bridge

Direct invocation::

    python -m replicate_bridge.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from replicate_bridge import PLUGIN_INFO, __version__
from replicate_bridge.api.models import ConfigUpdateRequest, GenerateRequest
from replicate_bridge.core.config import BridgeConfig, ConfigStore, config
from replicate_bridge.core.errors import BridgeError
from replicate_bridge.core.poller import SleepFunc
from replicate_bridge.core.prediction_manager import PredictionManager
from replicate_bridge.core.remote_client import ReplicateClient

logger = logging.getLogger(__name__)

router = APIRouter()


def _manager(request: Request) -> PredictionManager:
    return request.app.state.prediction_manager


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(request: Request) -> dict:
    """Report liveness and whether an API key is configured.

    Never fails, even when no credential is set.
    """
    snapshot = _manager(request).health()
    return {
        "status": "ok",
        "configured": snapshot.configured,
        "defaultModel": snapshot.default_model_id,
    }


@router.get("/info")
async def info() -> dict:
    """Return the plugin descriptor used by the host application."""
    return {**PLUGIN_INFO, "version": __version__}


@router.get("/config")
async def get_config(request: Request) -> dict:
    """Return the runtime configuration without exposing the credential."""
    snapshot = _manager(request).get_config()
    return {
        "configured": snapshot.configured,
        "defaultModel": snapshot.default_model_id,
    }


@router.post("/config")
async def update_config(request: Request, body: Any = Body(default=None)) -> dict:
    """Update the API credential and/or the default model.

    Fields that are absent or not strings are left unchanged.  A blank
    ``apiKey`` clears the credential; a blank ``defaultModel`` is ignored.
    The key is not validated against Replicate here.

    Args:
        body: Any JSON value.  Only an object is read as a
            :class:`ConfigUpdateRequest`; anything else, including an empty
            body, is a no-op update.

    Returns:
        ``{"success": true, "message": "Configuration updated"}``.
    """
    req = ConfigUpdateRequest.model_validate(body) if isinstance(body, dict) else ConfigUpdateRequest()
    _manager(request).set_config(credential=req.api_key, default_model_id=req.default_model)
    return {"success": True, "message": "Configuration updated"}


@router.get("/models")
async def list_models(request: Request) -> dict:
    """Return the static model catalog.

    Raises:
        Unauthorized: 401 when no API key is configured.
    """
    models = _manager(request).list_models()
    return {"models": [model.model_dump() for model in models]}


@router.post("/generate")
async def generate(request: Request, req: GenerateRequest | None = None) -> dict:
    """Generate images and wait for the prediction to finish.

    This endpoint:

    1. Validates that ``prompt`` is present and non-blank (400).
    2. Resolves the model (request ``model`` or the configured default).
    3. Requires a configured API key (401).
    4. Creates the prediction and polls it to a terminal state.
    5. Returns the output normalized to a list of image URLs.

    Returns:
        Dictionary with keys ``images``, ``prompt``, ``model`` and
        ``predictionId``.  ``images`` may be empty when the prediction
        succeeded without output.

    Raises:
        InvalidRequest: 400 for a missing prompt.
        Unauthorized: 401 when no API key is configured.
        RemoteServiceError, RemoteJobFailed, RemoteJobTimeout: 500.
    """
    req = req or GenerateRequest()
    result = await _manager(request).generate(req.to_generation_request())
    return {
        "images": result.images,
        "prompt": result.prompt,
        "model": result.model_id,
        "predictionId": result.job_id,
    }


@router.get("/prediction/{prediction_id}")
async def get_prediction(request: Request, prediction_id: str) -> dict:
    """Return the raw Replicate prediction, for clients that poll themselves."""
    job = await _manager(request).get_job(prediction_id)
    return job.raw


@router.post("/prediction/{prediction_id}/cancel")
async def cancel_prediction(request: Request, prediction_id: str) -> dict:
    """Cancel a running prediction and return Replicate's answer."""
    job = await _manager(request).cancel_job(prediction_id)
    return job.raw


# ---------------------------------------------------------------------------
# Error translation.
# ---------------------------------------------------------------------------


async def _bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(str(error.get("msg", "")) for error in exc.errors())
    logger.info("%s %s rejected (400): %s", request.method, request.url.path, details)
    return JSONResponse(status_code=400, content={"error": f"Invalid request body: {details}"})


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    settings: BridgeConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: SleepFunc | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Static settings; defaults to the global ``config``.
        transport: Optional httpx transport for the Replicate client (tests
            pass an ``httpx.MockTransport``).
        sleep: Optional async sleep used between poll attempts.

    Returns:
        A configured :class:`FastAPI` instance.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the config store, HTTP client and manager; close on shutdown."""
        # --- Startup -------------------------------------------------------
        store = ConfigStore.from_settings(settings)
        http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            transport=transport,
        )
        manager_kwargs = {
            "max_attempts": settings.poll_max_attempts,
            "interval": settings.poll_interval,
        }
        if sleep is not None:
            manager_kwargs["sleep"] = sleep

        app.state.config_store = store
        app.state.prediction_manager = PredictionManager(store, ReplicateClient(http, store), **manager_kwargs)
        logger.info(
            "Replicate bridge ready at %s (configured=%s, default_model=%s)",
            settings.mount_path or "/",
            store.configured,
            store.read().default_model_id,
        )

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        await http.aclose()
        logger.info("Replicate bridge shut down.")

    app = FastAPI(
        title="Replicate Bridge",
        description="Asynchronous Replicate predictions for chat image generation.",
        version=__version__,
        lifespan=lifespan,
    )

    # The chat UI is served from another origin during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BridgeError, _bridge_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router, prefix=settings.mount_path.rstrip("/"))
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~replicate_bridge.core.config.config`
    (``REPLICATE_BRIDGE_SERVER_HOST``, ``REPLICATE_BRIDGE_SERVER_PORT``,
    ``REPLICATE_BRIDGE_LOG_LEVEL``).  Defaults to ``0.0.0.0:7861``.

    This function is registered as the ``replicate-bridge`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "replicate_bridge.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
