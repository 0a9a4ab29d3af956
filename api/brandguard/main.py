import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .core.config import settings
from .core.logging import setup_logging
from .core.rate_limiter import RateLimitMiddleware
from .middleware.request_response import RequestResponseMiddleware
from .models.exceptions import BrandGuardException, EXCEPTION_HANDLERS, to_http_exception
from .routers import analyze, certificates, feedback, health, public, reports, revisions, workspaces
from .services.db import init_db

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan handler."""
    # Alembic owns the schema outside dev/test
    if settings.service_env in {"dev", "test"}:
        init_db()
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; analysis endpoints will fail")
    logger.info("BrandGuard API started", extra={"environment": settings.service_env})
    yield
    if settings.use_redis:
        from .services.redis import cleanup
        cleanup()
    logger.info("BrandGuard API stopped")


app = FastAPI(
    title=settings.service_name,
    description="BrandGuard API - AI compliance scoring for influencer marketing content",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add request/response middleware first to ensure headers/meta
app.add_middleware(RequestResponseMiddleware)

if settings.enable_inapp_rate_limit:
    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.rate_limit_rpm)

origins = [o.strip() for o in (settings.cors_allow_origins or "").split(",") if o.strip()]
if not origins:
    # Wildcard in dev for the local dashboard; none in prod
    origins = [] if settings.is_production else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Session-ID", "X-User-Name"],
    expose_headers=["X-Request-ID", "X-Processing-Time-Ms", "Retry-After"],
)


@app.exception_handler(BrandGuardException)
async def brandguard_exception_handler(request: Request, exc: BrandGuardException):
    """Map domain and vendor errors through the handler registry."""
    http_exc = None
    for exc_type, handler in EXCEPTION_HANDLERS.items():
        if isinstance(exc, exc_type):
            http_exc = handler(exc)
            break
    if http_exc is None:
        http_exc = to_http_exception(exc, status_code=500)

    level = logging.ERROR if http_exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"{type(exc).__name__}: {exc.message}",
        extra={"status_code": http_exc.status_code, "path": request.url.path},
    )
    headers = None
    retry_after = exc.details.get("retry_after_seconds") if exc.details else None
    if http_exc.status_code == 429 and retry_after:
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=http_exc.status_code, content=http_exc.detail, headers=headers)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": "ValidationError", "message": str(exc)})


app.include_router(health.router)
app.include_router(workspaces.router)
app.include_router(analyze.router)
app.include_router(reports.router)
app.include_router(certificates.router)
app.include_router(revisions.router)
app.include_router(feedback.router)
app.include_router(public.router)

# Static serving for local storage
Path(settings.local_storage_dir).mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=settings.local_storage_dir), name="static")
