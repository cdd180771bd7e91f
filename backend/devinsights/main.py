"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from devinsights.api import auth, health, readiness, repos, sse
from devinsights.api.deps import AppServices
from devinsights.config import Settings, settings as default_settings
from devinsights.core.logging import setup_logging
from devinsights.core.redis import get_async_redis
from devinsights.core.tracing import TracingContext
from devinsights.middleware.errors import register_exception_handlers
from devinsights.services.analytics.client import AnalyticsApiClient
from devinsights.services.readiness.policy import ReadinessPolicy
from devinsights.services.readiness.workflow import ReadinessWorkflow
from devinsights.services.selection_service import RepositorySelectionService
from devinsights.services.session_service import SessionService
from devinsights.services.state_store import (
    ClientStateStore,
    KeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
)

logger = logging.getLogger(__name__)


def build_store(cfg: Settings) -> KeyValueStore:
    backend = cfg.STATE_BACKEND.lower()
    if backend == "memory":
        return MemoryKeyValueStore()
    if backend == "redis":
        return RedisKeyValueStore(get_async_redis(cfg.REDIS_URL), cfg.STATE_NAMESPACE)
    raise ValueError(f"Unknown STATE_BACKEND {cfg.STATE_BACKEND!r}")


def build_services(
    cfg: Settings,
    store: Optional[KeyValueStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    policy: Optional[ReadinessPolicy] = None,
) -> AppServices:
    state = ClientStateStore(store or build_store(cfg))
    client = AnalyticsApiClient(
        base_url=cfg.ANALYTICS_API_URL,
        token_provider=state.get_token,
        transport=transport,
        default_timeout=cfg.API_TIMEOUT,
    )
    return AppServices(
        settings=cfg,
        state=state,
        client=client,
        sessions=SessionService(client, state),
        selection=RepositorySelectionService(client, state),
        workflow=ReadinessWorkflow(client, policy or ReadinessPolicy.from_settings(cfg)),
    )


def create_app(
    cfg: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    policy: Optional[ReadinessPolicy] = None,
) -> FastAPI:
    cfg = cfg or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        app.state.services = build_services(cfg, store, transport, policy)
        logger.info(f"{cfg.APP_NAME} companion API started (analytics API: {cfg.ANALYTICS_API_URL})")
        try:
            yield
        finally:
            await app.state.services.close()

    app = FastAPI(
        title="DevInsights Companion API",
        description="Session, repository selection and repository readiness for DevInsights",
        version=cfg.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        TracingContext.clear()
        TracingContext.set(correlation_id=request.headers.get("X-Request-ID", ""))
        corr_id = TracingContext.get_or_create_correlation_id()
        response = await call_next(request)
        response.headers["X-Request-ID"] = corr_id
        return response

    register_exception_handlers(app)

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(auth.router, prefix="/api")
    app.include_router(repos.router, prefix="/api")
    app.include_router(readiness.router, prefix="/api")
    app.include_router(sse.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "DevInsights Companion API",
            "version": cfg.APP_VERSION,
            "docs": "/api/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("devinsights.main:app", host="0.0.0.0", port=8080, reload=True)
