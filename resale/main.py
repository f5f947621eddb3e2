import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from resale.config import settings
from resale.services.container import ServiceContainer, build_container

APP_VERSION = "0.1.0"
logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


async def _build_default_services() -> ServiceContainer:
    from resale.storage.artifacts import get_artifact_store

    artifacts = get_artifact_store(settings)
    if settings.document_store == "memory":
        from resale.storage.documents import InMemoryDocumentStore

        store = InMemoryDocumentStore()
        logger.warning("Using in-memory document store; data is lost on restart")
    else:
        from resale.database import async_session, init_db
        from resale.storage.documents import SqlDocumentStore

        await init_db()
        store = SqlDocumentStore(async_session)

    return build_container(settings, store, artifacts)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Tests attach their own container before startup.
    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        app.state.services = await _build_default_services()

    yield

    if owns_services and settings.document_store != "memory":
        from resale.database import dispose_engine

        await dispose_engine()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Ticket Resale Marketplace",
        description="Listing, purchase and settlement of resold event tickets",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    from resale.api import API_PREFIX, API_ROUTERS

    for router in API_ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "name": "Ticket Resale Marketplace",
            "version": APP_VERSION,
            "docs": "/docs",
            "health": f"{API_PREFIX}/health",
        }

    return app


app = create_app()
