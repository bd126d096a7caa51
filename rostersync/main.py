"""
FastAPI application main module.
Runs the roster sync scheduler in-process and exposes health and job status endpoints.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Optional

from rostersync.api.v1 import api_router
from rostersync.bootstrap import SyncRuntime, build_runtime, start_runtime, stop_runtime
from rostersync.config import LOG_FILE, LOG_LEVEL, SERVICE_NAME, SERVICE_VERSION, load_sync_config
from rostersync.utils import get_logger, setup_logging, utc_now

logger = get_logger(__name__)


def default_runtime_factory() -> SyncRuntime:
    """Load the YAML config, configure logging from it and assemble the runtime."""
    cfg = load_sync_config()
    setup_logging(log_level=LOG_LEVEL or cfg.global_.log_level, log_file=LOG_FILE, enable_console=True)
    return build_runtime(cfg)


def create_app(
    runtime_factory: Optional[Callable[[], SyncRuntime]] = None,
    *,
    start_scheduler: bool = True,
) -> FastAPI:
    factory = runtime_factory or default_runtime_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Startup failures (config, initial directory load, info channel) abort the service.
        """
        logger.info("Application startup initiated")
        runtime: SyncRuntime | None = None
        try:
            runtime = factory()
            start_runtime(runtime, start_scheduler=start_scheduler)
            app.state.runtime = runtime
            logger.info("Application startup completed successfully")
            yield
        except Exception as e:
            logger.error("Application startup failed", error=str(e), exc_info=True)
            raise
        finally:
            logger.info("Application shutdown initiated")
            if runtime is not None:
                stop_runtime(runtime)
            app.state.runtime = None
            logger.info("Application shutdown completed")

    app = FastAPI(
        title="Roster Sync",
        description="Keeps Slack user groups in sync with PagerDuty on-call schedules and teams.",
        version=SERVICE_VERSION,
        docs_url="/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan,
    )
    app.state.runtime = None

    # Request ID and logging middleware
    @app.middleware("http")
    async def add_request_context_and_logging(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))
        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time_ms=round(process_time * 1000, 2),
            request_id=request_id
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning("Request validation failed", errors=exc.errors(), request_id=request_id)
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Request validation failed",
                "details": exc.errors(),
                "request_id": request_id
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=request_id,
            url=str(request.url),
            method=request.method
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "message": exc.detail,
                "request_id": request_id
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            request_id=request_id,
            url=str(request.url),
            method=request.method,
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Internal server error",
                "request_id": request_id
            }
        )

    @app.get("/health", tags=["health"], summary="Basic health check")
    async def health_check():
        """Basic health check endpoint for load balancers."""
        return {
            "status": "healthy" if app.state.runtime is not None else "starting",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": time.time(),
        }

    @app.get("/health/detailed", tags=["health"], summary="Detailed health check")
    async def detailed_health_check():
        """Directory snapshot age and size plus scheduler state."""
        health_status = {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": time.time(),
            "checks": {}
        }
        runtime: SyncRuntime | None = app.state.runtime
        if runtime is None:
            health_status["status"] = "unavailable"
            return health_status

        snapshot = runtime.directory.current()
        directory_check = {
            "users": len(snapshot.users),
            "groups": len(snapshot.groups),
            "loaded_at": snapshot.loaded_at.isoformat() if snapshot.loaded_at else None,
            "age_seconds": round((utc_now() - snapshot.loaded_at).total_seconds(), 1) if snapshot.loaded_at else None,
        }
        health_status["checks"]["directory"] = directory_check
        if snapshot.loaded_at is None:
            health_status["status"] = "degraded"

        health_status["checks"]["scheduler"] = runtime.scheduler.snapshot()
        if start_scheduler and not runtime.scheduler.is_running:
            health_status["status"] = "degraded"

        failing = [job.job_id for job in runtime.jobs if job.error is not None]
        health_status["checks"]["jobs"] = {"total": len(runtime.jobs), "with_errors": failing}
        health_status["dryrun"] = not runtime.config.global_.write
        return health_status

    @app.get("/", tags=["root"])
    async def root():
        return {
            "message": "Roster Sync API",
            "version": SERVICE_VERSION,
            "documentation": "/docs",
            "health_check": "/health",
            "api_base": "/api/v1"
        }

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()

# Development server configuration
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting development server")

    uvicorn.run(
        "rostersync.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
        access_log=True
    )
