"""
Pytest configuration for integration tests.

Provides an application wired with fake providers, the Redis double and a
SQLite durable tier, driven through FastAPI's TestClient.
"""

from collections.abc import Generator
from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lingomesh.api.deps import ServiceContainer
from lingomesh.api.routers import cache, health, providers, translation
from lingomesh.main import global_exception_handler, request_context_middleware
from lingomesh.services.background import BackgroundWriter
from lingomesh.services.orchestrator import TranslationOrchestrator
from lingomesh.services.translation_cache_service import TranslationCacheService
from lingomesh.services.translation_service import TranslationService


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def providers_under_test(make_provider):
    """Provider set used by the app; tests may replace or mutate it."""
    return [
        make_provider("libretranslate", priority=1),
        make_provider("google", priority=3),
    ]


@pytest.fixture
def container_holder():
    """Receives the ServiceContainer once the app lifespan has built it."""
    return {}


@pytest.fixture
def test_app(providers_under_test, fast_tier, session_factory, db_engine, container_holder):
    """FastAPI app with the production routers and test services."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        writer = BackgroundWriter(max_queue_size=100, workers=1)
        await writer.start()
        orchestrator = TranslationOrchestrator(providers_under_test)
        cache_service = TranslationCacheService(
            fast_tier=fast_tier,
            session_factory=session_factory,
            writer=writer,
            ttl_seconds=3600,
        )
        container = ServiceContainer(
            orchestrator=orchestrator,
            translation_service=TranslationService(
                orchestrator=orchestrator, cache=cache_service, max_batch_size=50
            ),
            cache_service=cache_service,
            writer=writer,
            fast_tier=fast_tier,
            engine=db_engine,
        )
        app.state.container = container
        container_holder["container"] = container
        yield
        await writer.stop(drain=True)

    app = FastAPI(lifespan=lifespan)
    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(Exception, global_exception_handler)
    app.include_router(health.router)
    app.include_router(translation.router)
    app.include_router(cache.router)
    app.include_router(providers.router)
    return app


@pytest.fixture
def client(test_app) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running for the whole test."""
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
def container(client, container_holder) -> ServiceContainer:
    return container_holder["container"]


@pytest.fixture
def drain(client, container):
    """Block until queued background cache writes have finished."""

    def _drain():
        client.portal.call(container.writer.drain)

    return _drain


# =============================================================================
# Celery Task Fixtures
# =============================================================================


@pytest.fixture
def celery_worker():
    """Run Celery tasks eagerly in-process."""
    from lingomesh.workers.celery_app import celery_app

    celery_app.conf.task_always_eager = True
    celery_app.conf.task_eager_propagates = True

    yield celery_app

    celery_app.conf.task_always_eager = False
    celery_app.conf.task_eager_propagates = False
