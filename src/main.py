"""
Screenshot Server

FastAPI application that serves per-device screenshots to e-ink
displays. Each request carries an HMAC-signed, device-bound token
and is throttled per device.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 3000 --reload

Or run directly:
    python main.py
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from auth import create_auth_gateway, create_request_limiter
from core.config import Settings, check_token_secret, get_settings
from core.logger import get_logger, setup_logging
from routers import screenshot_router
from services import ScreenshotStorage

logger = get_logger(__name__)


async def sweep_rate_limiters(app: FastAPI, interval: float) -> None:
    """Periodically drop stale rate-limiter entries until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = app.state.auth_gateway.sweep() + app.state.request_limiter.sweep()
        if removed:
            logger.debug(f"Rate limiter sweep removed {removed} entries")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events for proper resource management.
    """
    settings: Settings = app.state.settings

    setup_logging(settings.effective_log_level)

    # Startup
    logger.info("=" * 60)
    logger.info("Screenshot Server Starting")
    logger.info("=" * 60)
    logger.info(f"Endpoint: http://{settings.server_host}:{settings.server_port}/trmnl/screenshot/<device_id>")
    logger.info(f"Screenshot dir: {settings.screenshot_dir}")
    logger.info(
        f"Validation limit: {settings.validation_max_attempts}/{settings.validation_window_seconds:g}s, "
        f"request limit: {settings.request_max_attempts}/{settings.request_window_seconds:g}s"
    )
    logger.info(f"Debug: {settings.debug}")
    logger.info("=" * 60)

    for problem in check_token_secret(settings):
        logger.warning(problem)

    sweep_task: Optional[asyncio.Task] = None
    if settings.rate_limit_sweep_interval_seconds > 0:
        sweep_task = asyncio.create_task(
            sweep_rate_limiters(app, settings.rate_limit_sweep_interval_seconds)
        )

    yield

    # Shutdown
    logger.info("Shutting down...")
    if sweep_task is not None:
        sweep_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweep_task


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Auth components are constructed here and attached to app.state so
    their lifecycle is tied to the app instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Screenshot Server",
        description="""
    Serves rendered dashboard screenshots to e-ink devices.

    ## Authentication

    `GET /trmnl/screenshot/{device_id}` requires
    `Authorization: Bearer token_<base64_payload>_<hex_signature>`.
    A response header `X-Token-Rotate: true` means the token expires
    soon and a new one should be issued.
    """,
        version="1.0.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )

    app.state.settings = settings
    app.state.auth_gateway = create_auth_gateway(settings)
    app.state.request_limiter = create_request_limiter(settings)
    app.state.storage = ScreenshotStorage(settings)

    # CORS headers (for HA Ingress)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(screenshot_router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for container orchestration."""
        storage: ScreenshotStorage = request.app.state.storage
        healthy = storage.is_available

        return ORJSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "degraded",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    @app.get("/status")
    def status(request: Request):
        """Detailed status: storage stats and rate-limiter occupancy."""
        state = request.app.state
        return {
            "storage": state.storage.get_stats(),
            "rate_limiter": {
                "validation_keys": len(state.auth_gateway.limiter),
                "request_keys": len(state.request_limiter),
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
