import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import UTC, datetime

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from config.settings import settings
from services.albums.extractor import AlbumExtractor
from services.albums.urls import obfuscate_url
from services.cache.album_cache import AlbumCache
from services.database import KeyValueStore, init_db
from services.errors import PhotoFrameError
from services.health.monitor import HealthMonitor
from services.photos.brightness import BrightnessAnalyzer
from services.photos.service import PhotoService

logging.basicConfig(level=getattr(logging, settings.log_level))
log = logging.getLogger(__name__)

store = KeyValueStore()
fetch_monitor = HealthMonitor(store, name="album_fetch")
brightness_monitor = HealthMonitor(store, name="brightness")
photo_service = PhotoService(
    extractor=AlbumExtractor(),
    cache=AlbumCache(store),
    fetch_monitor=fetch_monitor,
    brightness=BrightnessAnalyzer(),
    brightness_monitor=brightness_monitor,
)


def get_photo_service() -> PhotoService:
    return photo_service


def get_monitors() -> list[HealthMonitor]:
    return [fetch_monitor, brightness_monitor]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    log.info(
        f"Cache TTL {settings.cache_ttl_seconds}s, "
        f"alerting {'on' if fetch_monitor.enabled else 'off'}, "
        f"brightness {'on' if photo_service.brightness.enabled else 'off'}"
    )
    yield


app = FastAPI(
    title="Photo Frame",
    description="Random photos from a shared album, sized for e-ink displays",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Health ---


@app.get("/health")
async def health(monitors: list[HealthMonitor] = Depends(get_monitors)):
    result = {}
    for monitor in monitors:
        stats = await monitor.snapshot()
        result[monitor.name] = asdict(stats) if stats else None
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "monitors": result,
    }


# --- Photos ---


class PhotoRequest(BaseModel):
    album_url: str = Field(min_length=1)
    use_cache: bool = True  # False = nothing about this album is persisted
    screen_width: int | None = Field(default=None, gt=0)
    screen_height: int | None = Field(default=None, gt=0)


@app.post("/photo")
async def random_photo(
    req: PhotoRequest,
    background_tasks: BackgroundTasks,
    service: PhotoService = Depends(get_photo_service),
):
    """Pick a random photo from the album. Health tracking runs after the response."""
    try:
        payload = await service.random_photo(
            req.album_url,
            use_cache=req.use_cache,
            screen_width=req.screen_width,
            screen_height=req.screen_height,
            schedule=background_tasks.add_task,
        )
    except PhotoFrameError as e:
        log.warning(f"Photo request for {obfuscate_url(req.album_url)} failed: {e.error_type}")
        raise HTTPException(e.status_code, {"error": e.error_type, "message": e.message}) from e

    return payload.to_dict()
