"""
LawWatch API - Scan triggers, change queries, registry checks and monitoring management

    uvicorn lawwatch.main:app
"""
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lawwatch.api.v1.monitorings import router as monitorings_router
from lawwatch.api.v1.registry import router as registry_router
from lawwatch.api.v1.scans import router as scans_router
from lawwatch.bootstrap import get_db_manager
from lawwatch.core.config import settings
from lawwatch.core.logging_config import get_logger, LoggingContext

logger = get_logger(__name__)

# ======================== LIFESPAN MANAGEMENT ========================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the snapshot tables on startup and release the pool on shutdown."""
    logger.info(f"Starting {settings.project_name} v{settings.version}", extra={"config": settings.to_dict()})
    db = get_db_manager()
    await db.create_tables()
    try:
        yield
    finally:
        await db.close()
        logger.info(f"{settings.project_name} stopped")

# ======================== APPLICATION SETUP ========================

app = FastAPI(
    title=settings.project_name,
    description=settings.description,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Bind X-Request-ID (or a fresh one) to the request state and the log context."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id

    with LoggingContext(request_id=request_id):
        if settings.observability.enable_request_logging:
            logger.info(f"{request.method} {request.url.path}")
        response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Services report failures as results; anything reaching here is a bug."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
            "metadata": {"request_id": getattr(request.state, 'request_id', None)},
        }
    )

# ======================== ROUTERS ========================

for router in (scans_router, registry_router, monitorings_router):
    app.include_router(router, prefix=settings.api_v1_prefix)


@app.get("/", tags=["System"])
async def root():
    prefix = settings.api_v1_prefix
    return {
        "name": settings.project_name,
        "version": settings.version,
        "description": settings.description,
        "endpoints": {
            "health": "/health",
            "scans": f"{prefix}/scans",
            "registry": f"{prefix}/registry",
            "monitorings": f"{prefix}/monitorings",
            "notifications": f"{prefix}/notifications",
        }
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Liveness plus snapshot store connectivity; never fails, reports ``degraded`` instead."""
    db_healthy = await get_db_manager().check_connection()
    return {
        "status": "healthy" if db_healthy else "degraded",
        "version": settings.version,
        "environment": settings.environment.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if db_healthy else "disconnected",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lawwatch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.observability.log_level.value.lower()
    )
