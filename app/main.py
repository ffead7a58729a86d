"""
Main FastAPI application for the Manhwa Reader API.
Serves health, public catalog/reader, comments, library, progress, admin and metrics.
"""
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.access.errors import AccessPolicyError, ContentLockedError, GateDataError
from app.api.routes import admin, auth, comments, health, library, progress, public
from app.core.config import settings
from app.core.logging import configure_logging, request_id_var
from app.utils.metrics import router as metrics_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Manhwa Reader API",
    description="Catalog, reader, library and admin API with VIP early access",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_log(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or uuid4().hex
    token = request_id_var.set(request_id)
    started = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers[settings.request_id_header] = request_id
    logger.info(
        "http_request",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        },
    )
    return response


@app.exception_handler(ContentLockedError)
async def content_locked_handler(request: Request, exc: ContentLockedError) -> JSONResponse:
    """403 {error, message, availableAt?}; the gated payload is never attached."""
    return JSONResponse(status_code=403, content=exc.to_response_body())


@app.exception_handler(AccessPolicyError)
async def access_policy_error_handler(request: Request, exc: AccessPolicyError) -> JSONResponse:
    logger.warning("invalid_access_input", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=400, content={"error": "INVALID_ACCESS_INPUT", "message": str(exc)})


@app.exception_handler(GateDataError)
async def gate_data_error_handler(request: Request, exc: GateDataError) -> JSONResponse:
    logger.error(
        "gate_data_invalid",
        extra={"path": request.url.path, "unit_type": exc.unit_type, "unit_id": exc.unit_id, "error": str(exc)},
    )
    return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR", "message": "Internal server error"})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix="/api")
app.include_router(public.router, prefix="/api")
app.include_router(comments.router, prefix="/api")
app.include_router(library.router, prefix="/api")
app.include_router(progress.router, prefix="/api")
app.include_router(admin.check_router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(metrics_router)
