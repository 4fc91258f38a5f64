"""
FastAPI application factory.

Usage:
    python -m api.app                    # Dev server on port 8000
    APP_STORE=json APP_JSON_STORE_PATH=/data/farm.json python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

The app serves two surfaces over one record store:
  - a JSON API under /api/v1 (farms, crops, tasks, expenses, reference data,
    weather, dashboard)
  - server-rendered Jinja2 pages (/, /farms, /crops, /tasks, /expenses,
    /weather)

Proxy-aware client IPs via TRUSTED_PROXIES, per-IP rate limits with periodic
cleanup, structured JSON logging when APP_LOG_FORMAT=json, and CORS via
APP_CORS_ORIGINS.
"""

import json
import logging
import time
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.database import build_store, configure_store, get_store
from api.routes import crops, dashboard, expenses, farms, reference, tasks, weather
from api.routes import frontend as frontend_routes
from store.base import RecordNotFoundError, RecordStore, StoreError
from store.seed import seed_demo_data
from store.services import FarmInUseError, FormValidationError
from utils.config import AppConfig, KnownValues
from utils.formatting import format_amount, format_date, format_percent, share_of, truncate_text
from utils import weather as weather_utils

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "client_ip",
                    "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("cropkeeper_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)

# ── Rate limiting ─────────────────────────────────────────────────────────────
# Each client IP gets a per-minute budget per record kind, counted separately
# for writes and reads. Form posts and JSON API calls on the same kind share
# one budget.
_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_rate_counters: dict[str, dict[str, list]] = defaultdict(lambda: defaultdict(list))
_MAX_TRACKED_IPS = 10_000
_last_cleanup: float = 0.0
_CLEANUP_INTERVAL = 300.0  # 5 minutes


def _rate_limit_for(method: str) -> int:
    if method in _WRITE_METHODS:
        return _cfg.rate_limit_write
    return _cfg.rate_limit_default


def _rate_bucket(method: str, path: str) -> str:
    """Counter key for a request, e.g. ``"write:farms"`` or ``"read:weather"``.

    ``/api/v1/farms/3`` and ``/farms/3/delete`` both count against ``farms``;
    the dashboard page at ``/`` is ``dashboard``.
    """
    budget = "write" if method in _WRITE_METHODS else "read"
    parts = [p for p in path.split("/") if p]
    if parts[:2] == ["api", "v1"]:
        parts = parts[2:]
    return f"{budget}:{parts[0] if parts else 'dashboard'}"


def _cleanup_rate_counters() -> None:
    """Drop hits older than a minute, then forget idle clients."""
    global _last_cleanup
    now = time.time()
    if now - _last_cleanup < _CLEANUP_INTERVAL:
        return
    _last_cleanup = now
    window_start = now - 60.0
    idle = []
    for ip, buckets in _rate_counters.items():
        for bucket in list(buckets.keys()):
            buckets[bucket] = [t for t in buckets[bucket] if t > window_start]
            if not buckets[bucket]:
                del buckets[bucket]
        if not buckets:
            idle.append(ip)
    for ip in idle:
        del _rate_counters[ip]
    # Too many active clients: forget the quietest ones first
    if len(_rate_counters) > _MAX_TRACKED_IPS:
        excess = len(_rate_counters) - _MAX_TRACKED_IPS
        quietest = sorted(
            _rate_counters.keys(),
            key=lambda ip: sum(len(v) for v in _rate_counters[ip].values()),
        )[:excess]
        for ip in quietest:
            del _rate_counters[ip]



# ── Extract real client IP (proxy-aware) ──────────────────────────────────────

def _get_client_ip(request: Request) -> str:
    """Return the real client IP, respecting X-Forwarded-For from trusted proxies."""
    direct_ip = request.client.host if request.client else "unknown"
    if not _cfg.trusted_proxies:
        return direct_ip
    if direct_ip not in _cfg.trusted_proxies:
        return direct_ip
    xff = request.headers.get("X-Forwarded-For", "")
    if xff:
        # X-Forwarded-For: client, proxy1, proxy2; leftmost is the real client
        real_ip = xff.split(",")[0].strip()
        if real_ip:
            return real_ip
    return direct_ip


# ── Application metrics ───────────────────────────────────────────────────────
# In-memory counters; reset on process restart.
_app_start_time: float = time.time()
_metrics: dict = {
    "request_count": 0,
    "error_count": 0,
    "blocked_count": 0,
    "response_times_ms": [],  # capped at last 100 entries
}
_RESPONSE_TIME_WINDOW = 100  # number of recent response times to average


def _field_errors(exc: RequestValidationError) -> dict[str, str]:
    """Collapse pydantic errors to one message per field (last ``loc`` part)."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if not isinstance(part, int)]
        field = loc[-1] if loc else "request"
        errors.setdefault(field, err.get("msg", "Invalid value"))
    return errors


def _error_body(error: str, detail: str, status_code: int) -> dict:
    return {"error": error, "detail": detail, "status_code": status_code}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the record store on startup and seed the demo farms if asked."""
    seed = app.state.seed_demo
    try:
        store = get_store()
        _logger.info("store ready %s", store.describe())
        if seed:
            seed_demo_data(store)
    except StoreError as exc:
        # Requests will answer 503 until the store recovers
        _logger.error("record store unavailable at startup: %s", exc)
    yield
    try:
        get_store().close()
    except StoreError as exc:
        _logger.error("record store close failed: %s", exc)


def create_app(
    db_path: Path | None = None,
    store: RecordStore | None = None,
    backend: str | None = None,
    seed_demo: bool | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the store file (useful for testing).
        store: Use this record store instead of building one from config.
        backend: Store backend for *db_path* ("sqlite" or "json"); defaults
            to APP_STORE.
        seed_demo: Seed the demo farms into an empty store on startup;
            defaults to APP_SEED_DEMO.

    Returns:
        Configured FastAPI application instance.
    """
    if store is not None:
        configure_store(store)
    elif db_path is not None:
        configure_store(build_store(backend or _cfg.store_backend, Path(db_path)))
    else:
        configure_store(None)

    weather_utils.configure_cache(_cfg.weather_cache_ttl)

    app = FastAPI(
        title="CropKeeper API",
        summary="Farm management: farms, crops, tasks, expenses and weather.",
        description=(
            "## CropKeeper API\n\n"
            "Manage farms and the crops, tasks and expenses that belong to them.\n\n"
            "### Key concepts\n"
            "- **Dates** are `YYYY-MM-DD` strings. Records with malformed dates "
            "are kept but never match a date range and sort last.\n"
            "- **Amounts** are dollars. Expense lists embed a `summary` computed "
            "over the whole filtered set, not just the returned page.\n"
            "- **farm_name** is resolved at read time; records whose farm no "
            "longer exists show `Unknown Farm`.\n"
            "- **Filters** combine with AND; `all` or an empty value means no "
            "constraint.\n\n"
            "### Rate limits\n"
            f"- POST/PUT/DELETE: {_cfg.rate_limit_write} req/min per IP and path\n"
            f"- All other requests: {_cfg.rate_limit_default} req/min per IP and path\n\n"
            "Returns `429 Too Many Requests` with `Retry-After: 60` when exceeded."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "farms", "description": "Farms and cascading farm deletion."},
            {"name": "crops", "description": "Crops planted on farms."},
            {"name": "tasks", "description": "Farm tasks with priorities and due dates."},
            {
                "name": "expenses",
                "description": "Expenses with category summaries and CSV/JSON/Excel export.",
            },
            {"name": "reference", "description": "Crop statuses, task priorities, expense categories."},
            {"name": "weather", "description": "Simulated per-farm weather reports."},
            {"name": "dashboard", "description": "Overview counts and recent records."},
            {"name": "meta", "description": "Health check and API metadata."},
        ],
    )
    app.state.seed_demo = _cfg.seed_demo if seed_demo is None else seed_demo

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging + rate limiting middleware ────────────────────────────

    @app.middleware("http")
    async def log_and_rate_limit(request: Request, call_next):
        """Log each request, enforce per-IP rate limits, and record metrics."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        client_ip = _get_client_ip(request)
        path = request.url.path

        _cleanup_rate_counters()

        # Health check bypass; not rate limited
        if path == "/health":
            response = await call_next(request)
            return response

        limit = _rate_limit_for(request.method)
        bucket = _rate_bucket(request.method, path)
        now = time.time()
        window_start = now - 60.0
        hits = _rate_counters[client_ip][bucket]
        _rate_counters[client_ip][bucket] = [t for t in hits if t > window_start]
        if len(_rate_counters[client_ip][bucket]) >= limit:
            _metrics["blocked_count"] += 1
            _logger.warning(
                "rate_limited ip=%s method=%s path=%s limit=%d",
                client_ip, request.method, path, limit,
            )
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests", "status_code": 429},
                headers={"Retry-After": "60"},
            )
        _rate_counters[client_ip][bucket].append(now)

        _metrics["request_count"] += 1
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000

        _metrics["response_times_ms"].append(duration_ms)
        if len(_metrics["response_times_ms"]) > _RESPONSE_TIME_WINDOW:
            _metrics["response_times_ms"] = (
                _metrics["response_times_ms"][-_RESPONSE_TIME_WINDOW:]
            )

        if response.status_code >= 500:
            _metrics["error_count"] += 1

        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "client_ip": client_ip,
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f ip=%s rid=%s",
                request.method, path, response.status_code, duration_ms,
                client_ip, request_id,
            )
        if duration_ms > 500:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Content Security Policy + security headers ────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Add Content-Security-Policy, X-Content-Type-Options, and X-Frame-Options."""
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "font-src 'self'; "
            "connect-src 'self';"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── Error handlers ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.exception("unhandled error method=%s path=%s", request.method,
                          request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", str(exc), 500),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content=_error_body("Bad request", str(exc), 400),
        )

    @app.exception_handler(FormValidationError)
    async def form_validation_handler(request: Request, exc: FormValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "Validation failed", "errors": exc.errors, "status_code": 422},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "error": "Validation failed",
                "errors": _field_errors(exc),
                "status_code": 422,
            },
        )

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("Not found", str(exc), 404),
        )

    @app.exception_handler(FarmInUseError)
    async def farm_in_use_handler(request: Request, exc: FarmInUseError):
        body = _error_body("Farm in use", str(exc), 409)
        body["dependents"] = exc.dependents
        return JSONResponse(status_code=409, content=body)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        _logger.error("store error method=%s path=%s: %s", request.method,
                      request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content=_error_body("Record store unavailable", str(exc), 503),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Unknown page paths get the HTML not-found page; the API keeps JSON."""
        if exc.status_code == 404 and frontend_routes.serves_page(request.url.path):
            return frontend_routes.render_not_found(request)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health():
        """Return 200 OK if the API is running and can reach the record store."""
        try:
            info = get_store().describe()
        except StoreError as e:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "error": str(e)},
            )
        return {"status": "ok", **info}

    @app.get(
        "/health/detailed",
        tags=["meta"],
        summary="Detailed health metrics",
        response_description="Operational metrics for monitoring dashboards",
    )
    def health_detailed():
        """Return detailed operational metrics for monitoring dashboards.

        Includes uptime, request/error counters, record counts, average
        response time, rate-limiter and weather cache stats. Counters reset
        on process restart.
        """
        uptime = time.time() - _app_start_time
        try:
            info = get_store().describe()
        except StoreError as exc:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "error": str(exc)},
            )

        rts = _metrics["response_times_ms"]
        avg_rt = round(sum(rts) / len(rts), 2) if rts else 0.0

        return {
            "status": "ok",
            "uptime_seconds": round(uptime, 2),
            "request_count": _metrics["request_count"],
            "error_count": _metrics["error_count"],
            "store": info,
            "avg_response_time_ms": avg_rt,
            "rate_limiter_stats": {
                "tracked_ips": len(_rate_counters),
                "blocked_requests": _metrics["blocked_count"],
            },
            "weather_cache": weather_utils.cache_stats(),
        }

    # ── Register routers ──────────────────────────────────────────────────────

    prefix = "/api/v1"
    app.include_router(farms.router,     prefix=prefix)
    app.include_router(crops.router,     prefix=prefix)
    app.include_router(tasks.router,     prefix=prefix)
    app.include_router(expenses.router,  prefix=prefix)
    app.include_router(reference.router, prefix=prefix)
    app.include_router(weather.router,   prefix=prefix)
    app.include_router(dashboard.router, prefix=prefix)

    # ── Static files + Jinja2 templates ────────────────────────────────────────
    _here = Path(__file__).parent.parent  # project root

    static_dir = _here / "static"
    templates_dir = _here / "templates"

    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    if templates_dir.exists():
        templates = Jinja2Templates(directory=str(templates_dir))
        templates.env.filters["fmt_amount"] = format_amount
        templates.env.filters["fmt_date"] = format_date
        templates.env.filters["fmt_percent"] = format_percent
        templates.env.filters["truncate_text"] = truncate_text
        templates.env.filters["badge_class"] = KnownValues.badge_class
        templates.env.globals["share_of"] = share_of

        # Wire templates into the frontend router
        frontend_routes.set_templates(templates)
        app.include_router(frontend_routes.router)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
