"""F1 API Proxy - FastAPI application and composition root."""
import asyncio
import contextlib
import secrets
import time
import traceback
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from f1_proxy.api import system
from f1_proxy.api.router import router as api_router
from f1_proxy.config import Settings, get_settings
from f1_proxy.core.cache import ResponseCache
from f1_proxy.core.errors import (
    ApiError,
    ErrorKind,
    ProxyError,
    internal_error,
    method_not_allowed,
    not_found,
    rate_limited,
    to_envelope,
)
from f1_proxy.core.logging_config import configure_logging
from f1_proxy.integrations.jolpica import JolpicaClient
from f1_proxy.services.f1_data import F1DataService

logger = structlog.get_logger(__name__)


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def error_response(request: Request, error: ApiError, stack: str | None = None) -> JSONResponse:
    """Log an error with the request id and render its envelope."""
    request_id = getattr(request.state, "request_id", None)
    log = logger.error if error.http_status >= 500 else logger.warning
    log(
        "request_error",
        request_id=request_id,
        code=error.code,
        status=error.http_status,
        error=error.message,
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=error.http_status,
        content=to_envelope(error, request_id=request_id, stack=stack),
    )


async def _sweep_expired(cache: ResponseCache, period: int) -> None:
    while True:
        await asyncio.sleep(period)
        removed = cache.expire()
        if removed:
            logger.debug("cache_sweep", removed=removed)


def create_app(settings: Settings | None = None, client: JolpicaClient | None = None) -> FastAPI:
    """Build the application and everything it owns.

    One cache, one upstream client and one rate limiter per app instance;
    handlers reach them through ``app.state``.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    client = client or JolpicaClient(base_url=settings.jolpica_api_url, timeout=settings.api_timeout)
    cache = ResponseCache(maxsize=settings.cache_max_entries)
    f1_data = F1DataService(
        cache,
        client,
        ttl_overrides=settings.ttl_overrides,
        coalesce=settings.coalesce_requests,
    )
    limiter = Limiter(
        key_func=get_remote_address,
        enabled=settings.rate_limit_enabled,
        headers_enabled=True,
    )

    # One budget per client IP shared by every data route; /health is mounted without it.
    @limiter.shared_limit(settings.rate_limit, scope="api")
    async def enforce_rate_limit(request: Request, response: Response) -> None:
        """Count the request against the caller's budget and report what is left."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown."""
        sweeper = None
        if settings.cache_check_period > 0:
            sweeper = asyncio.create_task(_sweep_expired(cache, settings.cache_check_period))
        logger.info(
            "server_started",
            port=settings.port,
            environment=settings.environment.value,
            upstream=settings.jolpica_api_url,
        )
        yield
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        await client.close()
        logger.info("server_stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Cached, validated proxy for the Jolpica F1 API",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,  # Disable docs in production
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.f1_data = f1_data
    app.state.limiter = limiter
    app.state.started_at = time.monotonic()

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        return error_response(request, exc.error)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            error = not_found(request.method, request.url.path).error
        elif exc.status_code == 405:
            error = method_not_allowed(request.method, request.url.path).error
        else:
            error = ApiError(ErrorKind.INTERNAL, str(exc.detail), status=exc.status_code)
        return error_response(request, error)

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(
            "rate_limit_exceeded",
            ip=get_remote_address(request),
            user_agent=request.headers.get("user-agent"),
            path=request.url.path,
        )
        retry_after = None
        view_limit = getattr(request.state, "view_rate_limit", None)
        if view_limit is not None:
            reset_at, _ = limiter.limiter.get_window_stats(view_limit[0], *view_limit[1])
            retry_after = max(0, int(reset_at - time.time()))
        response = error_response(request, rate_limited(retry_after).error)
        if retry_after is not None:
            response.headers["Retry-After"] = str(retry_after)
        return response

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        """Add security headers to all responses."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response

    # CORS - strict in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list if settings.is_production else ["*"],
        allow_credentials=False,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=86400,  # Cache preflight for 24 hours
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Tag the request with an id, time it, and turn unhandled faults into a 500 envelope."""
        request_id = request.headers.get("x-request-id") or new_request_id()
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            ip=get_remote_address(request),
            user_agent=request.headers.get("user-agent"),
        )
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("unhandled_exception", method=request.method, path=request.url.path)
            stack = traceback.format_exc() if settings.is_development else None
            response = error_response(request, internal_error().error, stack=stack)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
            content_length=response.headers.get("content-length", 0),
        )
        return response

    app.include_router(system.router, tags=["system"])
    app.include_router(api_router, dependencies=[Depends(enforce_rate_limit)])
    return app


app = create_app()
