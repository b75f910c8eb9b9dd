import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

# Telemetry must be initialized before anything logs
from opentelemetry.instrumentation.asgi import OpenTelemetryMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from common.core.otel_axiom_exporter import _initialize_telemetry, get_logger

from api.v1.routes.router import api_router
from common.core.config import settings
from common.core.constants import Environment
from common.core.exceptions import AppException
from common.db.session import engine
from common.providers.locking.factory import get_lock_provider
from common.providers.rate_limiter.limiter import limiter

_initialize_telemetry()
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} ({settings.environment.value})")
    yield
    # The internal sweep endpoint may have opened the Redis lock client
    await get_lock_provider().disconnect()
    await engine.dispose()
    logger.info("Shutdown complete")


async def _app_error_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors become `{"error": kind, "detail": message}` with their own status."""
    logger.info(
        f"{exc.kind}: {exc.message}",
        extra={"path": request.url.path, "kind": exc.kind},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message},
    )


# API docs are only served locally
_docs_enabled = settings.environment == Environment.LOCAL

app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    openapi_url="/openapi.json" if _docs_enabled else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(AppException, _app_error_handler)

app.add_middleware(SlowAPIMiddleware)
FastAPIInstrumentor.instrument_app(app)
app.add_middleware(OpenTelemetryMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Auth is enforced per router through dependencies
app.include_router(api_router, prefix="/api/v1")


@app.get("/healthz", include_in_schema=False)
async def healthz():
    """Liveness probe outside /api/v1."""
    return {"status": "ok"}
