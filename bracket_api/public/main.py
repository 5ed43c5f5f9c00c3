"""
FastAPI application for the bracket balance service.

Endpoints:
- POST /validate: is the bracket sequence balanced?
- POST /fix: return a balanced version of the sequence
- GET /metrics: Prometheus counters
- GET /health: heartbeat

Middleware enabled by default:
- Audit logging (request ID, payload hash, latency, status)
- Rate limiting (per client, configurable) and payload size enforcement
"""
from fastapi import FastAPI, status, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import asyncio
import contextlib
import logging
import time
from contextvars import ContextVar

from bracket_api.public.routes import brackets, health
from bracket_api.public.routes import metrics as metrics_routes
from bracket_api.public.middleware.audit_logging import AuditLoggingMiddleware, RequestIDMiddleware, request_id_for
from bracket_api.public.middleware.rate_limiting import RateLimitingMiddleware
from bracket_api.public.metrics import metrics, start_heartbeat
from bracket_api.public.settings import settings

# Context var for trace_id (used in logging)
trace_id_ctx: ContextVar[str] = ContextVar('trace_id', default='-')


# Logging filter to inject trace_id into all log records
class TraceIdFilter(logging.Filter):
    def filter(self, record):
        record.trace_id = trace_id_ctx.get()
        return True


# Configure logging (audit logs to stdout)
root_logger = logging.getLogger()
if not root_logger.handlers:
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s %(levelname)s %(name)s [%(trace_id)s] %(message)s',
    )

for handler in logging.root.handlers:
    if not any(isinstance(f, TraceIdFilter) for f in handler.filters):
        handler.addFilter(TraceIdFilter())

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Bracket Balance API",
    description="Check and repair the nesting of ( ) { } [ ] in a string.",
    version=settings.api_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)


@app.get("/")
def root():
    return {"name": "Bracket Balance API", "service": settings.service_name, "status": "running"}


@app.on_event("startup")
async def _startup():
    app.state.heartbeat_task = None
    if settings.enable_metrics:
        app.state.heartbeat_task = start_heartbeat(metrics, settings.heartbeat_interval_seconds)
    logger.info("%s %s started (environment=%s)", settings.service_name, settings.api_version, settings.environment)


@app.on_event("shutdown")
async def _shutdown():
    task = getattr(app.state, "heartbeat_task", None)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


# Trace ID middleware (binds the request ID to the logging context, adds timing header)
@app.middleware("http")
async def add_trace_id_middleware(request: Request, call_next):
    trace_id = request_id_for(request)

    token = trace_id_ctx.set(trace_id)
    try:
        start = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start

        response.headers["X-Request-ID"] = trace_id
        response.headers["X-Process-Time"] = str(process_time)
        return response
    finally:
        trace_id_ctx.reset(token)


# Security middleware stack (order matters: rate limit -> audit log -> request ID)
if settings.enable_rate_limiting:
    app.add_middleware(RateLimitingMiddleware)

if settings.enable_audit_logging:
    app.add_middleware(AuditLoggingMiddleware, enable_redaction=settings.enable_redaction)

app.add_middleware(RequestIDMiddleware)

# Include routes
app.include_router(health.router)
app.include_router(brackets.router)
if settings.enable_metrics:
    app.include_router(metrics_routes.router)


def _trace_id(request: Request) -> str:
    return request_id_for(request)


# HTTPException handler (wraps all HTTPException into ErrorResponse format)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict):
        err = exc.detail
    else:
        err = {"code": str(exc.detail), "message": str(exc.detail)}

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "trace_id": _trace_id(request),
            "status": "error",
            "error": err,
        },
        headers=getattr(exc, "headers", None),
    )


# RequestValidationError handler (wraps 422 validation errors into ErrorResponse format)
@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "trace_id": _trace_id(request),
            "status": "error",
            "error": {
                "code": "REQUEST_VALIDATION_ERROR",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
            },
        },
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred."
            }
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bracket_api.public.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development"
    )
