import time
import uuid
from contextlib import asynccontextmanager
from contextvars import ContextVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from celebstyle_gateway import admin, api_keys, public
from celebstyle_gateway.config import settings
from celebstyle_gateway.database import init_db
from celebstyle_gateway.errors import GatewayError
from celebstyle_gateway.health import metrics, router as health_router
from celebstyle_gateway.logging_config import (
    get_logger,
    log_exception,
    log_request_end,
    log_request_start,
    setup_logging,
)
from celebstyle_gateway.rate_limiting import apply_rate_limits

setup_logging(
    log_level=settings.log_level,
    log_format=settings.log_format,
    log_file=settings.log_file_path if settings.log_file_enabled else None,
    log_max_bytes=settings.log_file_max_size,
    log_backup_count=settings.log_file_backup_count,
)

logger = get_logger(__name__)

# Context variable for request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("startup", environment=settings.environment, version=settings.app_version)
    yield
    logger.info("shutdown")


app = FastAPI(
    title="Celebrity Style API Gateway",
    description="Usage-metered API keys with tiered plans for the celebrity style content API.",
    version=settings.app_version,
    lifespan=lifespan,
)

if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

apply_rate_limits(app)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses"""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Log all incoming requests and responses with timing"""
    request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    client_ip = request.client.host if request.client else "unknown"

    start_time = time.time()
    metrics.increment_requests()
    log_request_start(
        method=request.method,
        path=request.url.path,
        request_id=request_id,
        client_ip=client_ip,
    )

    response = await call_next(request)

    log_request_end(
        method=request.method,
        path=request.url.path,
        request_id=request_id,
        status_code=response.status_code,
        duration_ms=(time.time() - start_time) * 1000,
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """Render gateway and key-management failures as {success: false, message}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    request_id = request_id_var.get("")
    log_exception(
        exc,
        context={
            "method": request.method,
            "path": request.url.path,
            "request_id": request_id,
        },
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal server error", "request_id": request_id},
        headers={"X-Request-ID": request_id},
    )


app.include_router(health_router)
app.include_router(api_keys.router)
app.include_router(public.router)
app.include_router(admin.router)


@app.get("/")
async def read_root():
    return {"message": "Celebrity Style API Gateway is running."}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
