"""Ephemera — FastAPI entry point and composition root."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from ephemera.blob_host import BlobHost, StoredBlob
from ephemera.clock import Clock, SystemClock
from ephemera.config import Settings, settings as default_settings
from ephemera.rate_limiter import WindowCounter, WindowLimiter
from ephemera.routers import images, limits
from ephemera.sweeper import SweepScheduler
from ephemera.timed_store import TimedStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper: SweepScheduler = app.state.sweeper
    sweeper.start()
    logger.info("%s ready", app.state.settings.app_name)

    yield

    await sweeper.stop()
    logger.info("Sweeper stopped")


def create_app(settings: Settings | None = None, clock: Clock | None = None) -> FastAPI:
    """Build the app and the in-memory stores it owns.

    Every store, limiter and the blob host live on ``app.state``; handlers reach
    them through dependencies, so each app instance is fully isolated.
    """
    settings = settings or default_settings
    clock = clock or SystemClock()

    rate_store: TimedStore[WindowCounter] = TimedStore(clock, shards=settings.store_shards)
    blob_store: TimedStore[StoredBlob] = TimedStore(clock, shards=settings.store_shards)

    sweeper = SweepScheduler(settings.sweep_interval_seconds)
    sweeper.register("rate_limits", rate_store)
    sweeper.register("blobs", blob_store)

    app = FastAPI(
        title=settings.app_name,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.clock = clock
    app.state.sweeper = sweeper
    app.state.limiters = {
        "default": WindowLimiter(
            rate_store,
            window_seconds=settings.rate_limit_window_seconds,
            ceiling=settings.rate_limit_ceiling,
            namespace="default",
        ),
        "upload": WindowLimiter(
            rate_store,
            window_seconds=settings.rate_limit_window_seconds,
            ceiling=settings.upload_rate_limit_ceiling,
            namespace="upload",
        ),
    }
    app.state.blob_host = BlobHost(
        blob_store,
        ttl_seconds=settings.blob_ttl_seconds,
        id_bytes=settings.blob_id_bytes,
        max_attempts=settings.blob_max_attempts,
        allowed_media_prefix=settings.blob_allowed_media_prefix,
        max_payload_chars=settings.blob_max_payload_chars,
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        # Uploaded images (SVG included) are served from this origin; never let them run script.
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'; sandbox"
        return response

    app.include_router(images.router)
    app.include_router(limits.router)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "stores": {name: len(store) for name, store in app.state.sweeper.stores.items()},
            "sweeper": "running" if app.state.sweeper.running else "stopped",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
