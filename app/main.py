"""
FastAPI Application Entry Point

Pizzeria API - welcome page and operational endpoints.

Endpoints:
    - GET /: Welcome page
    - GET /health/ping: Liveness probe
    - GET /health: Process diagnostics (?detailed=true for host/CPU/network)
    - GET /health/logs: Tail of the current log file
    - GET /docs: Interactive API documentation

Author: Khalil_Bannouri
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

# Internal imports
from app.core.config import Settings, get_settings, setup_logging
from app.core.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    error_response,
)
from app.core.rate_limit import RateLimitMiddleware, rate_limiter
from app.schemas import (
    HealthErrorResponse,
    HealthResponse,
    LogErrorResponse,
    LogTailResponse,
    PingResponse,
)
from app.services.diagnostics import basic_snapshot, detailed_snapshot
from app.services.log_tail import DEFAULT_LINES, MAX_LINES, MIN_LINES, parse_lines, tail_lines

# Initialize configuration and logging
settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

# Template configuration
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

DOCS_URL = "/docs"


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

def startup_banner(settings: Settings) -> str:
    base_url = f"http://localhost:{settings.port}"
    return "\n".join([
        "",
        "=" * 60,
        f"      {settings.app_name} started",
        "=" * 60,
        f" Environment : {settings.node_env.value}",
        f" Port        : {settings.port}",
        f" URL         : {base_url}",
        f" Docs        : {base_url}{DOCS_URL}",
        " BasePath    : /",
        f" Version     : {settings.app_version}",
        f" Date        : {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "=" * 60,
        "",
    ])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info(startup_banner(settings))

    yield  # Application runs

    logger.info("Shutting down...")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Pizzeria backend: welcome page, health and diagnostics endpoints.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url=DOCS_URL,
    redoc_url="/redoc",
)


def custom_openapi() -> dict:
    """OpenAPI document with a bearer token security scheme declared."""
    if app.openapi_schema:
        return app.openapi_schema

    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["bearer"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    app.openapi_schema = schema
    return schema


app.openapi = custom_openapi

# Middleware: the last one added runs first. ErrorHandlingMiddleware sits
# inside the security headers and request logging so 500s get both.
app.add_middleware(
    RateLimitMiddleware,
    limit=settings.throttle_limit,
    window_seconds=settings.throttle_ttl,
    limiter=rate_limiter,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1024)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# ROOT
# =============================================================================

@app.get("/", response_class=HTMLResponse, tags=["Root"], summary="Welcome Page")
async def root(request: Request) -> HTMLResponse:
    """Landing page with a link to the interactive documentation."""
    return templates.TemplateResponse(
        request,
        "welcome.html",
        {
            "docs_url": DOCS_URL,
            "app_name": settings.app_name,
            "app_version": settings.app_version,
        },
    )


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================

@app.get("/health/ping", response_model=PingResponse, tags=["Health"], summary="Ping")
async def ping() -> PingResponse:
    return PingResponse(status="ok", timestamp=datetime.now(timezone.utc))


@app.get(
    "/health",
    response_model=HealthResponse,
    response_model_exclude_unset=True,
    responses={500: {"model": HealthErrorResponse}},
    tags=["Health"],
    summary="Process Diagnostics",
)
async def health(
    detailed: bool = Query(False, description="Include uptime breakdown, system, CPU, host and network"),
    settings: Settings = Depends(get_settings),
):
    """Uptime, memory and environment of the running process."""
    try:
        collect = detailed_snapshot if detailed else basic_snapshot
        snapshot = await run_in_threadpool(collect, settings.node_env.value, settings.port)
        return HealthResponse(**snapshot)
    except Exception as e:
        logger.exception(f"Error computing health: {e}")
        return JSONResponse(status_code=500, content={"status": "error", "error": str(e)})


@app.get(
    "/health/logs",
    response_model=LogTailResponse,
    responses={404: {"model": LogErrorResponse}, 500: {"model": LogErrorResponse}},
    tags=["Health"],
    summary="Tail Current Log File",
)
async def tail_logs(
    lines: Optional[str] = Query(
        None,
        description=f"Lines to return ({MIN_LINES}-{MAX_LINES}, default {DEFAULT_LINES})",
    ),
    settings: Settings = Depends(get_settings),
):
    """Last lines of today's log file."""
    count = parse_lines(lines)
    log_path = settings.log_file_path.absolute()

    if not log_path.exists():
        return JSONResponse(
            status_code=404,
            content={"error": "No log file found", "path": str(log_path)},
        )

    try:
        tail = await run_in_threadpool(tail_lines, log_path, count)
    except Exception as e:
        logger.exception(f"Error reading logs: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Error reading logs", "detail": str(e)},
        )

    return LogTailResponse(path=str(log_path), lines=len(tail), tail=tail)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for exceptions raised outside ErrorHandlingMiddleware
    (e.g. by the outer middleware themselves).
    """
    logger.exception(f"Unhandled exception: {exc}")
    return error_response(exc, get_settings())


# =============================================================================
# ENTRY POINT
# =============================================================================

def run() -> None:
    """Start the HTTP server."""
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,  # keep the handlers installed by setup_logging
        access_log=False,
        server_header=False,
    )


if __name__ == "__main__":
    run()
