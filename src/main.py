"""Knowledge-base ingestion engine: FastAPI application entry point.

Wires together providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and (when ``CRAWL_ENABLED=true``) runs the periodic
crawl sweep as a background task for the lifetime of the process.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    RequestLoggingMiddleware,
    configure_cors,
    install_error_handling,
)
from src.api.routes import APP_VERSION
from src.api.routes import router as api_router
from src.bootstrap import build_components
from src.config.settings import Settings
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


async def _start(application: FastAPI, app_settings: Settings) -> dict[str, Any]:
    components = build_components(app_settings)
    for key, value in components.items():
        setattr(application.state, key, value)

    await components["chunk_store"].initialize()

    crawl_task: asyncio.Task | None = None
    if app_settings.crawl_enabled:
        crawl_task = asyncio.create_task(components["crawl_scheduler"].run_forever())
    application.state.crawl_task = crawl_task

    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=app_settings.app_env,
        crawl_enabled=app_settings.crawl_enabled,
        **components["provider_registry"],
    )
    return components


async def _stop(application: FastAPI, components: dict[str, Any]) -> None:
    crawl_task: asyncio.Task | None = getattr(application.state, "crawl_task", None)
    if crawl_task is not None:
        crawl_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await crawl_task

    await components["chunk_store"].close()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client and chunk store closed")


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = await _start(application, settings)
    yield
    await _stop(application, components)


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    """Build and configure the FastAPI application.

    ``with_lifespan=False`` skips provider construction so tests can place
    their own components on ``app.state``.
    """
    application = FastAPI(
        title="Knowledge Base Ingestion API",
        version=APP_VERSION,
        description=(
            "Fetch web pages, social posts and manual submissions, split them "
            "into overlapping chunks, embed each chunk, and keep the semantic "
            "index in step with the source content."
        ),
        lifespan=_lifespan if with_lifespan else None,
    )

    # -- Middleware (order matters: last added = first executed) --
    install_error_handling(application)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
