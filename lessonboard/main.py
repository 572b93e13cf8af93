"""FastAPI application entry point.

This module assembles all components and creates the main application.
"""

import secrets
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import requests
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from lessonboard import __version__
from lessonboard.api import auth, chat, health, metrics, pages, videos
from lessonboard.core.config import Config, ConfigService, PlayerConfig, validate_config
from lessonboard.core.errors import APIError, global_exception_handler
from lessonboard.core.logging import clear_request_id, configure_logging, set_request_id
from lessonboard.core.metrics import MetricsCollector, initialize_metrics
from lessonboard.middleware.auth import AuthGateMiddleware, configure_auth
from lessonboard.providers.base import IdentityProvider
from lessonboard.providers.oidc import OIDCProvider
from lessonboard.services.catalog import VideoCatalog, load_catalog
from lessonboard.services.chat import ChatHistoryStore, ChatService

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics.

    Records request count and duration for all endpoints,
    using FastAPI route templates to normalize paths.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and record metrics."""
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        # Fixed label for unmatched routes keeps label cardinality bounded
        route = request.scope.get("route")
        endpoint = route.path if route else "/unmatched"

        MetricsCollector.record_request(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
            duration=duration,
        )

        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the logging context and echo it in the response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER) or None)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_catalog(request: Request) -> VideoCatalog:
    """Get the catalog loaded at startup."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise RuntimeError("Catalog not configured")
    return catalog


def get_player_config(request: Request) -> PlayerConfig:
    return request.app.state.config.player


def get_identity_provider(request: Request) -> Optional[IdentityProvider]:
    """Get the identity provider, None when sign-in is not configured."""
    return getattr(request.app.state, "identity_provider", None)


def get_chat_service(request: Request) -> ChatService:
    """Get the chat service created at startup."""
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise RuntimeError("Chat service not configured")
    return service


def build_identity_provider(config: Config) -> Optional[IdentityProvider]:
    """Create the OIDC provider when the issuer and client are configured."""
    settings = config.auth
    if not (settings.issuer and settings.client_id and settings.client_secret):
        if not settings.allow_anonymous:
            logger.warning("Identity provider not configured, sign-in is unavailable")
        return None

    return OIDCProvider(
        issuer=settings.issuer,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        scope=settings.scope,
        timeout=settings.http_timeout,
        session=requests.Session(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown."""
    config: Config = app.state.config

    logger.info("Application starting", version=__version__)

    # Initialize metrics with application version
    initialize_metrics(__version__)

    # Configure logging
    configure_logging(config.logging.level, config.logging.format)

    logger.info(
        "Configuration loaded",
        server_port=config.server.port,
        catalog_path=config.catalog.path,
    )

    try:
        validate_config(config)
    except ValueError as e:
        # Degraded start: pages stay behind the login page until sign-in is configured
        logger.warning("Configuration incomplete", error=str(e))

    # Load the video catalog
    app.state.catalog = load_catalog(config.catalog.path)
    logger.info("Catalog loaded", records=len(app.state.catalog))

    # Configure sign-in
    app.state.allow_anonymous = config.auth.allow_anonymous
    app.state.identity_provider = build_identity_provider(config)
    if app.state.identity_provider is not None:
        logger.info("Identity provider configured", provider=app.state.identity_provider.name)

    # Configure the chat backend
    app.state.chat_service = ChatService(
        reply_delay=config.chat.reply_delay,
        failure_rate=config.chat.failure_rate,
        max_history=config.chat.max_history,
        history=ChatHistoryStore(
            maxsize=config.chat.max_conversations,
            ttl=config.chat.history_ttl,
        ),
    )

    logger.info("Application startup complete", version=__version__)

    yield

    logger.info("Application shutting down")
    provider = app.state.identity_provider
    if isinstance(provider, OIDCProvider):
        provider.close()
    logger.info("Application shutdown complete")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Preloaded configuration; loaded from config.yaml and the
                environment when omitted
    """
    if config is None:
        config = ConfigService().load()

    app = FastAPI(
        title="Lessonboard",
        description="Signed-in dashboard for watching multi-part video lessons",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.config = config

    session_secret = config.auth.session_secret
    if not session_secret:
        session_secret = secrets.token_urlsafe(32)
        logger.warning(
            "session_secret not configured, using a random key; sessions end on restart",
        )

    # Middleware runs outermost-last: the auth gate must see the session
    session_auth = configure_auth(allow_anonymous=config.auth.allow_anonymous)
    app.add_middleware(AuthGateMiddleware, auth=session_auth)
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie="lessonboard_session",
        max_age=config.auth.session_max_age,
        same_site="lax",
        https_only=config.auth.https_only,
    )

    # Default ["*"] for development; override via APP_SECURITY_CORS_ORIGINS env var
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config.monitoring.metrics_enabled:
        app.add_middleware(MetricsMiddleware)

    app.add_middleware(RequestContextMiddleware)

    # Register global exception handlers
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(APIError, global_exception_handler)
    app.add_exception_handler(StarletteHTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)

    # Override dependency injection for routers
    app.dependency_overrides[videos.get_catalog] = get_catalog
    app.dependency_overrides[videos.get_player_config] = get_player_config
    app.dependency_overrides[auth.get_identity_provider] = get_identity_provider
    app.dependency_overrides[chat.get_chat_service] = get_chat_service

    # Register routers
    app.include_router(health.router)
    app.include_router(pages.router)
    app.include_router(auth.router)
    app.include_router(videos.router)
    app.include_router(chat.router)
    if config.monitoring.metrics_enabled:
        app.include_router(metrics.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.config.server
    uvicorn.run(
        "lessonboard.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
    )
