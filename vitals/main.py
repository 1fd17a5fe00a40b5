from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, sse, vitals
from .config import get_settings
from .services import vitals_collector
from .services.broadcaster import VitalsBroadcaster
from .utils.logging import get_logger, setup_logging

logger = get_logger("vitals.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, then run the SSE broadcaster for the lifetime of the app."""
    settings = get_settings()
    setup_logging(debug=settings.is_development, level=settings.log_level)
    logger.info("application_starting", env=settings.env, host=settings.host, port=settings.port)

    broadcaster = VitalsBroadcaster(
        collect=vitals_collector.collect_vitals,
        interval=settings.tick_interval_seconds,
    )
    app.state.broadcaster = broadcaster
    await broadcaster.start()
    try:
        yield
    finally:
        await broadcaster.stop()
        logger.info("application_stopped")


app = FastAPI(title="Host Vitals", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
    max_age=300,
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(vitals.router, prefix="/vitals", tags=["vitals"])
app.include_router(sse.router, prefix="/sse", tags=["sse"])
