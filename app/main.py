import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from app.api.v1.router import router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.services.nav_transport import NavTransport
from app.services.pipeline import DigestPipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    application.state.nav_configured = False
    settings = get_settings()
    configure_logging(settings.log_level)
    if not settings.nav_configured:
        logger.warning("NAV technical user is not configured; queries are disabled")
    async with httpx.AsyncClient(
        base_url=settings.nav_base_url, timeout=settings.request_timeout_s
    ) as client:
        application.state.pipeline = DigestPipeline(
            transport=NavTransport(
                client,
                retry_attempts=settings.retry_attempts,
                retry_delay_s=settings.retry_delay_s,
            ),
            technical_user=settings.technical_user(),
            software_data=settings.software_data(),
        )
        application.state.nav_configured = settings.nav_configured
        yield
    application.state.nav_configured = False


app = FastAPI(title="Invoice Digest Service", lifespan=lifespan)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=422)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal processing failure"}, status_code=500)


@app.middleware("http")
async def require_nav_configured(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    if request.url.path.startswith("/api/") and not getattr(
        app.state, "nav_configured", False
    ):
        return JSONResponse(
            {"error": "Service unavailable: NAV client is not configured"},
            status_code=503,
        )
    return await call_next(request)


app.include_router(router, prefix="/api/v1")


@app.get("/health")
async def health() -> JSONResponse:
    return JSONResponse(
        {"status": "ok", "nav_configured": getattr(app.state, "nav_configured", False)}
    )
