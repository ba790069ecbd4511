"""
FastAPI application exposing the page audits over HTTP.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional, TypeVar
from uuid import uuid4

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from siteprobe import __version__
from siteprobe.audit import PageAuditService
from siteprobe.config import settings
from siteprobe.errors import AuditError, InputError, SiteProbeError
from siteprobe.observability import export_prometheus

logger = structlog.get_logger(__name__)

T = TypeVar("T")

URL_REQUIRED = "URL is required"
ROUTES_REQUIRED = "Routes are required"

# Message returned for unexpected faults, per endpoint.
FAILURE_MESSAGES: Dict[str, str] = {
    "speed": "Test failed",
    "dom": "Failed to load the page. Please ensure the URL is correct and accessible.",
    "css": "Failed to analyze CSS for the given URL",
    "assets": "Failed to process the URL",
    "routes": "Failed to process routes",
    "crawl": "Crawler failed",
}


class UrlRequest(BaseModel):
    url: Optional[str] = None


class RoutesRequest(BaseModel):
    routes: Optional[List[str]] = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle."""
    app.state.start_time = time.time()
    logger.info("SiteProbe API starting", version=__version__)
    yield
    logger.info("SiteProbe API shutting down")


app = FastAPI(
    title="SiteProbe API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.monitoring.web_ui.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)


def get_audit_service() -> PageAuditService:
    """One service per request; it holds no state between calls."""
    return PageAuditService(settings)


def _require_url(body: Optional[UrlRequest]) -> str:
    if body is None or not body.url:
        raise InputError(URL_REQUIRED)
    return body.url


async def _run(endpoint: str, operation: Callable[[], Awaitable[T]]) -> T:
    """Run an audit, turning anything outside the error hierarchy into an AuditError."""
    try:
        return await operation()
    except SiteProbeError:
        raise
    except Exception as e:
        logger.exception("Audit failed", endpoint=endpoint)
        raise AuditError(FAILURE_MESSAGES[endpoint]) from e


@app.exception_handler(SiteProbeError)
async def handle_siteprobe_error(request: Request, exc: SiteProbeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("Request failed", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "success": False})


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors()), "success": False},
    )


@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Liveness probe."""
    return {"status": "healthy", "timestamp": time.time(), "version": __version__}


@app.get("/metrics")
async def get_prometheus_metrics() -> Response:
    """Endpoint for Prometheus to scrape."""
    return Response(export_prometheus(), media_type="text/plain")


@app.post("/api/audits")
async def page_speed(
    body: Optional[UrlRequest] = None, service: PageAuditService = Depends(get_audit_service)
) -> Dict[str, Any]:
    url = _require_url(body)
    data = await _run("speed", lambda: service.page_speed(url))
    return {"success": True, "data": data}


@app.post("/api/dominator")
async def dom_audit(
    body: Optional[UrlRequest] = None, service: PageAuditService = Depends(get_audit_service)
) -> Dict[str, Any]:
    url = _require_url(body)
    report = await _run("dom", lambda: service.dom(url))
    return report.to_dict()


@app.post("/api/dominator/css")
async def css_audit(
    body: Optional[UrlRequest] = None, service: PageAuditService = Depends(get_audit_service)
) -> Dict[str, Any]:
    url = _require_url(body)
    report = await _run("css", lambda: service.css(url))
    return report.to_dict()


@app.post("/api/dominator/links")
async def assets_audit(
    body: Optional[UrlRequest] = None, service: PageAuditService = Depends(get_audit_service)
) -> Dict[str, Any]:
    url = _require_url(body)
    report = await _run("assets", lambda: service.assets(url))
    return report.to_dict()


@app.post("/api/playmaker")
async def route_health(
    body: Optional[RoutesRequest] = None, service: PageAuditService = Depends(get_audit_service)
) -> Dict[str, Any]:
    if body is None or body.routes is None:
        raise InputError(ROUTES_REQUIRED)
    routes = body.routes
    samples = await _run("routes", lambda: service.route_health(routes))
    return {"results": [sample.to_dict() for sample in samples]}


@app.post("/api/playwright-crawl")
async def crawl(
    body: Optional[UrlRequest] = None, service: PageAuditService = Depends(get_audit_service)
) -> Dict[str, Any]:
    url = _require_url(body)
    data = await _run("crawl", lambda: service.crawl(url))
    return {"success": True, "data": data}


@app.middleware("http")
async def add_process_time_header(request: Request, call_next: Callable) -> Any:
    """Tag the request with an id, bind it for logging and time the response."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    request.state.request_id = request_id

    structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "Request served",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            response_time_ms=round(process_time * 1000, 2),
        )
        return response
    finally:
        structlog.contextvars.unbind_contextvars("request_id")


def run_web_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Function to run the FastAPI server."""
    import uvicorn

    web_ui = settings.monitoring.web_ui
    host = host or web_ui.host
    port = port or web_ui.port

    logger.info("Starting SiteProbe API", url=f"http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)
