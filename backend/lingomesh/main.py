"""
LingoMesh FastAPI Application.

Main application entry point with route registration and lifecycle management.
"""

import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lingomesh.api.deps import ServiceContainer
from lingomesh.api.routers import cache, health, providers, translation
from lingomesh.core.config import Settings, settings
from lingomesh.core.db import SessionLocal, close_db, engine, init_db
from lingomesh.core.logging import get_logger, log_context
from lingomesh.services.background import BackgroundWriter
from lingomesh.services.orchestrator import TranslationOrchestrator
from lingomesh.services.providers.factory import build_providers
from lingomesh.services.providers.libretranslate_provider import LibreTranslateProvider
from lingomesh.services.redis_cache import RedisTranslationCache
from lingomesh.services.translation_cache_service import TranslationCacheService
from lingomesh.services.translation_service import TranslationService

logger = get_logger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================


def run_migrations() -> None:
    """Upgrade the database schema to the latest Alembic revision."""
    from alembic import command
    from alembic.config import Config

    backend_dir = Path(__file__).parent.parent
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "migrations"))
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


def build_services(app_settings: Settings) -> ServiceContainer:
    """Wire providers, orchestrator, both cache tiers and the translation service."""
    provider_list = build_providers(app_settings)
    orchestrator = TranslationOrchestrator(provider_list)

    writer = BackgroundWriter(
        max_queue_size=app_settings.background_queue_size,
        workers=app_settings.background_workers,
    )

    fast_tier = None
    if app_settings.cache_enabled:
        fast_tier = RedisTranslationCache.from_url(
            app_settings.redis_url,
            ttl_seconds=app_settings.cache_ttl_seconds,
            max_connections=app_settings.redis_max_connections,
            socket_timeout=app_settings.redis_socket_timeout,
        )

    cache_service = TranslationCacheService(
        fast_tier=fast_tier,
        session_factory=SessionLocal,
        writer=writer,
        ttl_seconds=app_settings.cache_ttl_seconds,
    )

    detector = next(
        (p for p in provider_list if isinstance(p, LibreTranslateProvider)), None
    )
    translation_service = TranslationService(
        orchestrator=orchestrator,
        cache=cache_service if app_settings.cache_enabled else None,
        detector=detector,
        default_source_lang=app_settings.default_source_lang,
        max_batch_size=app_settings.max_batch_size,
        batch_timeout=app_settings.batch_timeout_seconds,
        request_timeout=app_settings.provider_timeout_seconds,
    )

    return ServiceContainer(
        orchestrator=orchestrator,
        translation_service=translation_service,
        cache_service=cache_service,
        writer=writer,
        fast_tier=fast_tier,
        engine=engine,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting LingoMesh translation service...")

    try:
        run_migrations()
        logger.info("Database migrations applied")
    except Exception as e:
        logger.warning(f"Database migration run failed: {e}", exc_info=True)
        # init_db below still creates missing tables

    init_db()

    container = build_services(settings)
    await container.writer.start()
    app.state.container = container

    yield

    logger.info("Shutting down LingoMesh translation service...")
    await container.writer.stop(drain=True)
    await container.orchestrator.aclose()
    if container.fast_tier is not None:
        await container.fast_tier.close()
    close_db()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Instance
# =============================================================================

app = FastAPI(
    title="LingoMesh API",
    description="Multi-provider translation service with two-tier caching",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Attach a request ID to every log record emitted while handling the request."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    with log_context(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler.

    Catches all unhandled exceptions and returns a proper error response.
    """
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method},
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": type(exc).__name__,
            "message": str(exc) if settings.debug else "An error occurred",
        },
    )


# =============================================================================
# Route Registration
# =============================================================================

# Health check endpoints
app.include_router(health.router)

# Translation endpoints
app.include_router(translation.router)

# Cache management endpoints
app.include_router(cache.router)

# Provider status endpoints
app.include_router(providers.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("lingomesh.main:app", host=settings.api_host, port=settings.api_port)
