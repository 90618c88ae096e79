import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from venuescout.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "venuescout.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from venuescout.routers import cache, recommendations
from venuescout.services.adaptive_cache import adaptive_cache
from venuescout.services.sources import places_client, reddit_client

logger = logging.getLogger(__name__)


def _sweep_cache():
    removed = adaptive_cache.clear_expired()
    if removed:
        logger.info(f"Cache sweep: {removed} expired entries removed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: periodic cache sweep
    scheduler = None
    if settings.scheduler_enabled:
        try:
            scheduler = AsyncIOScheduler()
            scheduler.add_job(
                _sweep_cache,
                IntervalTrigger(seconds=settings.cache_cleanup_interval_seconds),
                id="cache_sweep",
            )
            scheduler.start()
            logger.info("Background scheduler started")
        except Exception as e:
            logger.error(f"Scheduler failed to start: {e}")
            scheduler = None

    yield

    # Shutdown
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    await reddit_client.close()
    await places_client.close()


app = FastAPI(
    title="VenueScout",
    description="Venue discovery and recommendation quality pipeline",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recommendations.router, prefix="/api/recommendations", tags=["recommendations"])
app.include_router(cache.router, prefix="/api/cache", tags=["cache"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "venuescout", "cache_size": len(adaptive_cache)}
