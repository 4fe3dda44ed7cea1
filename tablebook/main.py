"""
TableBook - FastAPI Backend Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog

from tablebook.config import settings
from tablebook.errors import BookingError, InvalidRequestError
from tablebook.api import auth, public, bookings, calendar, inventory, feed
from tablebook.api import settings as settings_api
from tablebook.webhooks import payments

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting TableBook API", version="1.0.0")
    yield
    logger.info("Shutting down TableBook API")


# Create FastAPI application
app = FastAPI(
    title="TableBook",
    description="Multi-tenant restaurant reservation service",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Render booking errors as {success, error, message}"""
    if exc.status_code >= 500:
        logger.error("Booking request failed", path=request.url.path, code=exc.code, detail=exc.detail)
    else:
        logger.info("Booking request rejected", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Request body and query errors share the booking error shape"""
    messages = [
        f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}"
        for error in exc.errors()
    ]
    error = InvalidRequestError("; ".join(messages) or None)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Health check endpoints
@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy", "service": "api", "version": "1.0.0"}


@app.get("/health/ready")
async def ready():
    """Readiness check with dependency verification"""
    from tablebook.database import SessionLocal

    checks = {}

    # Check database
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"failed: {str(e)}"

    # Check Redis
    if settings.task_queue_enabled:
        try:
            from tablebook.jobs.celery_app import celery_app
            celery_app.control.ping(timeout=1)
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"failed: {str(e)}"

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
    }


# Include API routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(public.router, prefix="/public", tags=["Public"])
app.include_router(bookings.router, prefix="/tenants/{tenant_id}/bookings", tags=["Bookings"])
app.include_router(calendar.router, prefix="/tenants/{tenant_id}", tags=["Calendar"])
app.include_router(settings_api.router, prefix="/tenants/{tenant_id}/settings", tags=["Settings"])
app.include_router(inventory.router, prefix="/tenants/{tenant_id}", tags=["Inventory"])
app.include_router(feed.router, prefix="/tenants/{tenant_id}", tags=["Feed"])

# Include webhook routers
app.include_router(payments.router, prefix="/webhooks", tags=["Webhooks"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tablebook.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
