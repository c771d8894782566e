"""Knowledge-base API layer — routes, schemas, auth, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    install_error_handling,
)
from src.api.routes import router
from src.api.schemas import (
    CrawlResponse,
    ErrorResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    PostHookRequest,
    PostHookResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "install_error_handling",
    "router",
    "CrawlResponse",
    "ErrorResponse",
    "HealthResponse",
    "IngestRequest",
    "IngestResponse",
    "PostHookRequest",
    "PostHookResponse",
]
