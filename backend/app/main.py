from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import time
import uuid
from datetime import datetime, timezone
from .routers.pos import router as pos_router
from .routers.categories import router as categories_router
from .routers.items import router as items_router
from .routers.customers import router as customers_router
from .routers.transactions import router as transactions_router
from .routers.imports import router as imports_router
from .routers.reports import router as reports_router
from .routers.calculators import router as calculators_router
from .routers.company import router as company_router
from .config import settings
from .db import get_conn, open_pool, close_pools
from .logs import json_log as _json_log
from .storage import StorageError

app = FastAPI(title="Retail POS API", version=settings.api_version)
STARTED_AT_UTC = datetime.now(timezone.utc)

SERVICE_NAME = "retail-pos-backend"

# Postgres SQLSTATE -> (status, detail) for storage failures the client can act on.
_STORAGE_ERROR_STATUS = {
    "23505": (409, "conflict"),
    "23503": (400, "invalid reference"),
    "23514": (400, "constraint violation"),
    "23502": (400, "missing required value"),
    "22P02": (400, "invalid value"),
}


def _current_request_id(req: Request) -> str:
    return getattr(req.state, "request_id", "") or req.headers.get("x-request-id") or "startup"


@app.exception_handler(StorageError)
def _storage_error(req: Request, exc: StorageError):
    status, detail = _STORAGE_ERROR_STATUS.get(exc.code or "", (502, "storage error"))
    content = {"detail": detail, "request_id": _current_request_id(req)}
    if settings.env in {"local", "dev"}:
        content["error"] = exc.message
    return JSONResponse(status_code=status, content=content)


@app.exception_handler(RequestValidationError)
def _request_validation_error(_req: Request, exc: Exception):
    content = {"detail": "validation failed"}
    if settings.env in {"local", "dev"} and hasattr(exc, "errors"):
        content["errors"] = exc.errors()
    return JSONResponse(status_code=422, content=content)


@app.exception_handler(Exception)
def _unhandled_exception(req: Request, exc: Exception):
    rid = _current_request_id(req)
    _json_log(
        "error",
        "http.request.unhandled",
        request_id=rid,
        method=req.method,
        path=req.url.path,
        error=str(exc),
    )
    content = {"detail": "internal error", "request_id": rid}
    if settings.env in {"local", "dev"}:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def _elapsed_ms(started: float) -> int:
    return int((time.time() - started) * 1000)


@app.middleware("http")
async def _log_requests(request: Request, call_next):
    rid = (request.headers.get("X-Request-Id") or "").strip() or uuid.uuid4().hex
    request.state.request_id = rid
    started = time.time()
    ctx = {
        "request_id": rid,
        "method": request.method,
        "path": request.url.path,
        "owner_id": request.headers.get("X-Owner-Id") or None,
    }

    try:
        response = await call_next(request)
    except Exception as exc:
        _json_log("error", "http.request.error", duration_ms=_elapsed_ms(started), error=str(exc), **ctx)
        raise

    response.headers["X-Request-Id"] = rid
    if ctx["path"] != "/health":
        _json_log("info", "http.request", status_code=response.status_code, duration_ms=_elapsed_ms(started), **ctx)
    return response


# Dev CORS: the till UI runs on a different port during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(pos_router)
app.include_router(categories_router)
app.include_router(items_router)
app.include_router(customers_router)
app.include_router(transactions_router)
app.include_router(imports_router)
app.include_router(reports_router)
app.include_router(calculators_router)
app.include_router(company_router)

@app.on_event("startup")
def _startup():
    # ConfigurationError propagates: the API must not start without a storage backend.
    open_pool()
    ok, err = _db_health()
    if ok:
        _json_log("info", "startup.db_connected", env=settings.env, version=settings.api_version)
    else:
        _json_log("warning", "startup.db_unreachable", env=settings.env, error=err)

@app.on_event("shutdown")
def _shutdown():
    close_pools()


def _db_health():
    try:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                cur.fetchone()
        return True, None
    except Exception as exc:
        return False, str(exc)


@app.get("/health")
def health(req: Request):
    request_id = _current_request_id(req)
    ok, err = _db_health()
    content = {
        "status": "ok" if ok else "degraded",
        "env": settings.env,
        "db": "ok" if ok else "down",
        "service": SERVICE_NAME,
        "version": settings.api_version,
        "started_at": STARTED_AT_UTC.isoformat(),
        "request_id": request_id,
    }
    if not ok:
        if settings.env in {"local", "dev"}:
            content["error"] = err
        return JSONResponse(status_code=503, content=content)
    return content


@app.get("/meta")
def meta():
    return {
        "service": SERVICE_NAME,
        "version": settings.api_version,
        "env": settings.env,
        "uptime_seconds": int((datetime.now(timezone.utc) - STARTED_AT_UTC).total_seconds()),
        "started_at": STARTED_AT_UTC.isoformat(),
    }
