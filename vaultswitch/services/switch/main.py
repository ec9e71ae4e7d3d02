"""HTTP surface for switch configuration, check-ins, scans and nominee access."""

from time import perf_counter
from uuid import uuid4

import redis
from fastapi import FastAPI, Header, HTTPException, Query, Request

from vaultswitch.common.config import settings
from vaultswitch.common.db import SessionLocal
from vaultswitch.common.errors import (
    ConfigurationError,
    ConflictError,
    DeliveryError,
    ExpiredTokenError,
    InvalidTransitionError,
    NotFoundError,
    ScanAlreadyRunningError,
    StoreError,
    SwitchError,
)
from vaultswitch.common.locking import single_flight
from vaultswitch.common.logging import configure_logging, log_context, logger
from vaultswitch.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from vaultswitch.common.startup import log_startup_config
from vaultswitch.common.tracing import instrument_app, setup_tracing
from vaultswitch.services.switch.scanner import SCAN_LOCK_NAME
from vaultswitch.services.switch.schemas import (
    AccessGrant,
    ActivateRequest,
    CheckInRequest,
    CheckInResponse,
    ConfigureSwitchRequest,
    NotificationResponse,
    ScanReport,
    SwitchResponse,
    SwitchStatus,
)
from vaultswitch.services.switch.service import SwitchService


configure_logging()
setup_tracing(settings.service_name)
service = SwitchService(SessionLocal)
log_startup_config(
    settings.service_name,
    ["SERVICE_NAME", "POSTGRES_DSN", "REDIS_URL", "APP_URL", "MAIL_RELAY_URL", "MAIL_RELAY_API_KEY"],
    delivery_channel=type(service.channel).__name__,
    clear_token_on_check_in=settings.clear_token_on_check_in,
)
rdb = redis.Redis.from_url(settings.redis_url, decode_responses=True)

app = FastAPI(title="Digital Legacy Vault Switch Service")
instrument_app(app)

_STATUS_BY_ERROR: list[tuple[type[SwitchError], int]] = [
    (NotFoundError, 404),
    (ExpiredTokenError, 410),
    (ConfigurationError, 400),
    (ConflictError, 409),
    (InvalidTransitionError, 409),
    (ScanAlreadyRunningError, 409),
    (DeliveryError, 502),
    (StoreError, 503),
]


def _switch_error(exc: SwitchError) -> HTTPException:
    """Map service errors to HTTP status codes."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def enforce_api_key(x_api_key: str | None) -> None:
    """Simple API-key gate for internal endpoints."""

    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="invalid API key")


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency, and bind a trace id for logging."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    try:
        with log_context(trace_id=request.headers.get("x-trace-id") or str(uuid4())):
            response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


@app.post("/switches", response_model=SwitchResponse)
def configure_switch(req: ConfigureSwitchRequest):
    """Create or update the owner's switch and nominee details."""

    try:
        return service.configure_switch(req)
    except SwitchError as exc:
        raise _switch_error(exc) from exc


@app.post("/switches/{switch_id}/activate", response_model=SwitchResponse)
def activate_switch(switch_id: str, req: ActivateRequest):
    """Arm or disarm a switch."""

    try:
        return service.set_active(switch_id, req.active)
    except SwitchError as exc:
        raise _switch_error(exc) from exc


@app.post("/switches/{switch_id}/check-in", response_model=CheckInResponse)
def check_in(switch_id: str, request: Request, req: CheckInRequest | None = None):
    """Owner's "I'm still here": resets the inactivity clock."""

    origin = req or CheckInRequest()
    if origin.ip_address is None and request.client is not None:
        origin.ip_address = request.client.host
    if origin.user_agent is None:
        origin.user_agent = request.headers.get("user-agent")
    try:
        return service.check_in(switch_id, origin)
    except SwitchError as exc:
        raise _switch_error(exc) from exc


@app.get("/switches/{switch_id}/status", response_model=SwitchStatus)
def get_status(switch_id: str):
    """Current status; `configured=false` when no such switch exists."""

    try:
        return service.get_status(switch_id)
    except SwitchError as exc:
        raise _switch_error(exc) from exc


@app.get("/switches/{switch_id}/notifications", response_model=list[NotificationResponse])
def list_notifications(switch_id: str, limit: int = Query(100, ge=1, le=500)):
    """Notification history, newest first."""

    try:
        return service.list_notifications(switch_id, limit=limit)
    except SwitchError as exc:
        raise _switch_error(exc) from exc


@app.post("/switches/{switch_id}/test-notification")
def send_test_notification(switch_id: str):
    """Send a one-off test message to the nominee."""

    try:
        result = service.send_test_notification(switch_id)
    except SwitchError as exc:
        raise _switch_error(exc) from exc
    if result.error is not None:
        raise HTTPException(status_code=502, detail=result.error)
    return {"status": result.status, "recipient": result.recipient}


@app.post("/internal/scan", response_model=ScanReport)
def run_scan(x_api_key: str | None = Header(default=None)):
    """Run one inactivity scan; refused while another scan holds the lock."""

    enforce_api_key(x_api_key)
    try:
        with single_flight(rdb, SCAN_LOCK_NAME, settings.scan_lock_ttl_seconds):
            return service.run_scan()
    except SwitchError as exc:
        raise _switch_error(exc) from exc


@app.get("/vault/access/{token}", response_model=AccessGrant)
def vault_access(token: str):
    """Resolve a nominee access token to its delegated-access grant."""

    try:
        return service.validate_access_token(token)
    except SwitchError as exc:
        logger.info("vault access refused error=%s", type(exc).__name__)
        raise _switch_error(exc) from exc


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
