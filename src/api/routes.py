"""FastAPI API routes for the knowledge-base ingestion engine.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern; ``src/main.py`` populates
``app.state`` at startup.

    Endpoint                        Method  Auth           Description
    -----------------------------------------------------------------------
    /api/v1/ingest                  POST    bearer token   Ingest a URL or raw text
    /api/v1/hooks/posts/{post_id}   POST    X-Hook-Secret  Post created/edited hook
    /api/v1/crawl                   POST    bearer token   Run the crawl sweep now
    /api/v1/index/stats             GET     bearer token   Index statistics
    /api/v1/health                  GET     none           Health + providers
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request

from src.api.auth import extract_bearer_token, validate_access_token, verify_shared_secret
from src.api.schemas import (
    CrawlResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    PostHookRequest,
    PostHookResponse,
)
from src.config.settings import Settings
from src.models.knowledge import IndexStats, IngestionStage, SourceDescriptor, SourceKind
from src.services.ingestion.crawl_scheduler import CrawlScheduler
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.post_trigger import PostChangeHandler, should_reingest
from src.utils.errors import AuthenticationError, ValidationError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

APP_VERSION = "0.1.0"

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    """Return the settings the application was built with."""
    return request.app.state.settings


def _get_ingestion_service(request: Request) -> IngestionService:
    """Return the ingestion orchestrator from application state."""
    return request.app.state.ingestion_service


def _get_post_handler(request: Request) -> PostChangeHandler:
    """Return the post change handler from application state."""
    return request.app.state.post_handler


def _get_crawl_scheduler(request: Request) -> CrawlScheduler:
    """Return the crawl scheduler from application state."""
    return request.app.state.crawl_scheduler


SettingsDep = Annotated[Settings, Depends(_get_settings)]
IngestionServiceDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
PostHandlerDep = Annotated[PostChangeHandler, Depends(_get_post_handler)]
CrawlSchedulerDep = Annotated[CrawlScheduler, Depends(_get_crawl_scheduler)]


def _require_caller(
    settings: SettingsDep,
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Return the authenticated caller's subject or raise ``AuthenticationError``."""
    token = extract_bearer_token(authorization)
    subject = validate_access_token(
        token, settings.ingest_api_secret, settings.ingest_token_ttl_hours
    )
    if subject is None:
        raise AuthenticationError(message="User not authenticated")
    return subject


CallerDep = Annotated[str, Depends(_require_caller)]


# ---------------------------------------------------------------------------
# Interactive ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/ingest",
    response_model=IngestResponse,
    summary="Ingest a URL or raw text into the knowledge base",
)
async def ingest_content(
    body: IngestRequest,
    caller: CallerDep,
    service: IngestionServiceDep,
) -> IngestResponse:
    """Normalize, chunk, embed and write one manually supplied source.

    Re-ingesting the same URL replaces its previous chunks.  ``success``
    means the source was processed; ``chunks`` is the number of records
    written and is 0 when every chunk failed to embed (nothing changes in
    the index then).
    """
    has_text = bool(body.text and body.text.strip())
    if not has_text and not body.url:
        raise ValidationError(message="Either text or url is required")

    source = SourceDescriptor(
        kind=SourceKind.MANUAL,
        doc_type=body.source_type,
        url=body.url or None,
        text=body.text,
        title=body.title,
        metadata=body.metadata,
    )
    _logger.info("manual_ingest_requested", caller=caller, url=body.url, has_text=has_text)
    result = await service.ingest(source)
    if result.stage is IngestionStage.FAILED:
        _logger.warning("manual_ingest_wrote_nothing", caller=caller, url=body.url)
    return IngestResponse(success=True, chunks=result.chunk_count)


# ---------------------------------------------------------------------------
# Post change hook
# ---------------------------------------------------------------------------


@router.post(
    "/hooks/posts/{post_id}",
    response_model=PostHookResponse,
    status_code=202,
    summary="Notify the engine that a social post was written",
)
async def post_written_hook(
    post_id: str,
    body: PostHookRequest,
    background_tasks: BackgroundTasks,
    settings: SettingsDep,
    handler: PostHandlerDep,
    x_hook_secret: Annotated[str | None, Header()] = None,
) -> PostHookResponse:
    """Acknowledge immediately; ingestion runs after the response is sent."""
    if not verify_shared_secret(x_hook_secret, settings.post_hook_secret):
        raise AuthenticationError(message="Invalid hook secret")

    will_ingest = should_reingest(body.before, body.after)
    if will_ingest:
        background_tasks.add_task(handler.handle, post_id, body.before, body.after)
    else:
        _logger.debug("post_hook_no_change", post_id=post_id, deleted=body.after is None)
    return PostHookResponse(accepted=True, post_id=post_id, will_ingest=will_ingest)


# ---------------------------------------------------------------------------
# Crawl and index
# ---------------------------------------------------------------------------


@router.post(
    "/crawl",
    response_model=CrawlResponse,
    summary="Run the scheduled crawl sweep immediately",
)
async def run_crawl(caller: CallerDep, scheduler: CrawlSchedulerDep) -> CrawlResponse:
    _logger.info("manual_crawl_requested", caller=caller)
    result = await scheduler.run_once()
    return CrawlResponse(
        urls=len(scheduler.urls),
        failed_urls=result.failed_urls,
        chunks=result.total_chunks,
    )


@router.get(
    "/index/stats",
    response_model=IndexStats,
    summary="Knowledge-base index statistics",
)
async def index_stats(caller: CallerDep, service: IngestionServiceDep) -> IndexStats:
    return await service.get_stats()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and configured providers."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)
    return HealthResponse(status="ok", version=APP_VERSION, providers=providers)
