"""
Blog API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create the DB engine + session factory for this app
  3. Create tables if not present
  4. Initialise the object storage client & image bucket
  5. Expose Prometheus /metrics endpoint

Run with:  uvicorn blog_api.main:app
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy.exc import SQLAlchemyError

from blog_api.clients.storage_client import init_storage
from blog_api.config import Settings, settings as default_settings
from blog_api.database import create_engine, create_session_factory, init_db
from blog_api.errors import BlogError, describe_error
from blog_api.routers import posts, uploads, webhooks
from blog_api.telemetry import UPSTREAM_FAILURES_TOTAL, instrument_app, setup_tracing

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of the database and storage connections."""
    settings: Settings = app.state.settings
    logger.info("Starting Blog API (env=%s)", settings.environment)

    engine = create_engine(settings)
    app.state.session_factory = create_session_factory(engine)
    await init_db(engine)
    app.state.storage = init_storage(settings)   # blocking: boto3 is sync

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await engine.dispose()


# ── Exception handlers ─────────────────────────────────────────────────────

async def handle_blog_error(request: Request, exc: BlogError) -> JSONResponse:
    if exc.status_code >= 500:
        UPSTREAM_FAILURES_TOTAL.inc()
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI's own parsing errors onto the field-error envelope."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("body",)
        field = str(loc[-1])
        errors.setdefault(field, error.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": errors},
    )


async def handle_upstream_error(request: Request, exc: Exception) -> JSONResponse:
    UPSTREAM_FAILURES_TOTAL.inc()
    logger.exception("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"message": "Error", "err": describe_error(exc)},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    # Set up tracing before the app is created so all imports are instrumented
    setup_tracing(settings)

    app = FastAPI(
        title="Blog API",
        description=(
            "Authenticated blog posts with a public feed, cover image "
            "uploads and identity-provider user sync."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(BlogError, handle_blog_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    for upstream in (SQLAlchemyError, ClientError, BotoCoreError, Exception):
        app.add_exception_handler(upstream, handle_upstream_error)

    # ── Routers ────────────────────────────────────────────────────────────
    app.include_router(posts.router, prefix="/blog", tags=["Posts"])
    app.include_router(uploads.router, prefix="/upload", tags=["Uploads"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])

    # ── Prometheus metrics endpoint ────────────────────────────────────────
    app.mount("/metrics", make_asgi_app())

    # ── OTel FastAPI instrumentation ───────────────────────────────────────
    instrument_app(app, settings)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "service": settings.service_name}

    return app


app = create_app()
