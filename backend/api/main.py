"""
POS Monitor API — FastAPI Application Entry Point

Run:
    uvicorn api.main:app --app-dir backend
"""

import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from core.config import Settings, get_settings, resolve_storage_config
from core.errors import ConfigurationError, IntegrityViolation, StorageError, StorageUnavailable
from db.storage import init_storage
from monitoring.broadcast import BroadcastChannel
from monitoring.registry import SessionRegistry
from monitoring.service import MonitoringService
from monitoring.simulator import DeviceStatusSimulator

logger = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("POS Monitor API starting up", version=settings.app_version)
        try:
            storage_config = resolve_storage_config(settings)
            storage = await init_storage(storage_config)
        except (ConfigurationError, StorageError) as exc:
            # Never serve against a half-initialized store
            logger.error("startup.aborted", error=str(exc), error_type=type(exc).__name__)
            raise

        channel = BroadcastChannel(SessionRegistry(), send_timeout=settings.ws_send_timeout_seconds)
        monitoring = MonitoringService(storage, channel)
        app.state.storage_config = storage_config
        app.state.storage = storage
        app.state.broadcast = channel
        app.state.monitoring = monitoring

        simulator = None
        if settings.device_simulation_enabled:
            simulator = DeviceStatusSimulator(monitoring, interval=settings.device_simulation_interval_seconds)
            simulator.start()

        yield

        if simulator is not None:
            await simulator.stop()
        await storage.dispose()
        logger.info("POS Monitor API shutting down")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="POS terminal fleet monitoring with realtime status push",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def request_log_middleware(request: Request, call_next):
        """Log one line per API request with status and duration."""
        start = time.perf_counter()
        response = await call_next(request)
        path = request.url.path
        if path.startswith("/api"):
            logger.info(
                "http.request",
                method=request.method,
                path=path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            )
        return response

    @app.exception_handler(IntegrityViolation)
    async def integrity_violation_handler(request: Request, exc: IntegrityViolation):
        status_code = 422 if exc.reason == "invalid_value" else 409
        logger.info("storage.rejected", path=request.url.path, reason=exc.reason, error=str(exc))
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "reason": exc.reason})

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
        logger.error("storage.unavailable", path=request.url.path, error=str(exc), timed_out=exc.timed_out)
        return JSONResponse(status_code=504 if exc.timed_out else 503, content={"detail": str(exc)})

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Import and register routers
    from api.v1.routers import (
        alerts,
        banking_units,
        branches,
        customers,
        employees,
        monthly_stats,
        pos_devices,
        system,
        territories,
        transactions,
        users,
        visits,
    )
    from monitoring.websocket import router as ws_router

    app.include_router(users.router)
    app.include_router(branches.router)
    app.include_router(employees.router)
    app.include_router(banking_units.router)
    app.include_router(customers.router)
    app.include_router(pos_devices.router)
    app.include_router(transactions.router)
    app.include_router(alerts.router)
    app.include_router(monthly_stats.router)
    app.include_router(visits.router)
    app.include_router(territories.router)
    app.include_router(system.router)
    app.include_router(ws_router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check with the active backend and connected dashboard count."""
        channel = getattr(request.app.state, "broadcast", None)
        config = getattr(request.app.state, "storage_config", None)
        return {
            "status": "healthy",
            "version": settings.app_version,
            "backend": config.backend if config else None,
            "sessions": len(channel.registry) if channel else 0,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=5000)
