import logging
import random
import time
from collections.abc import Callable
from typing import Any

from config.settings import settings
from services.albums.extractor import AlbumExtractor
from services.albums.models import PhotoRecord
from services.albums.urls import AlbumRef, obfuscate_id, obfuscate_url, parse_album_url
from services.cache.album_cache import AlbumCache
from services.errors import EmptyAlbumError, InvalidAlbumUrlError, NetworkError, ParseError
from services.health.monitor import EventStatus, HealthEvent, HealthMonitor
from services.photos.brightness import BrightnessAnalyzer
from services.photos.enrich import background_class
from services.photos.selector import PhotoPayload, build_payload, select_random

log = logging.getLogger(__name__)

# Something like BackgroundTasks.add_task: schedule(fn, *args) runs fn after the response.
Scheduler = Callable[..., Any]


class PhotoService:
    """Album link in, one enriched random photo out.

    Health events go to `schedule` when given so monitoring never delays the
    response; without one they are awaited inline.
    """

    def __init__(
        self,
        extractor: AlbumExtractor,
        cache: AlbumCache,
        fetch_monitor: HealthMonitor | None = None,
        brightness: BrightnessAnalyzer | None = None,
        brightness_monitor: HealthMonitor | None = None,
        rng: random.Random | None = None,
    ):
        self.extractor = extractor
        self.cache = cache
        self.fetch_monitor = fetch_monitor
        self.brightness = brightness
        self.brightness_monitor = brightness_monitor
        self.rng = rng

    async def _report(
        self, monitor: HealthMonitor | None, event: HealthEvent, schedule: Scheduler | None
    ):
        if monitor is None or event.status == EventStatus.SKIPPED:
            return
        if schedule is not None:
            schedule(monitor.observe, event)
        else:
            await monitor.observe(event)

    async def load_album(
        self, ref: AlbumRef, use_cache: bool = True, schedule: Scheduler | None = None
    ) -> tuple[list[PhotoRecord], str | None]:
        """Photos and album title, from cache when possible."""
        bypass = not use_cache
        key = await self.cache.resolve_key(ref, bypass=bypass)
        cached = await self.cache.get(key, bypass=bypass)
        if cached:
            return cached.photos, cached.album_name

        reason = "bypassed" if bypass else "miss"
        log.info(f"Fetching album {obfuscate_url(ref.url)} (cache {reason})")
        start = time.perf_counter()
        try:
            page, final_url = await self.extractor.extract(ref.url)
        except NetworkError as e:
            status = EventStatus.TIMEOUT if e.error_type == "timeout" else EventStatus.ERROR
            await self._report(
                self.fetch_monitor,
                HealthEvent.now(status, duration_ms=_elapsed_ms(start), error_type=e.error_type),
                schedule,
            )
            raise
        except (ParseError, EmptyAlbumError) as e:
            await self._report(
                self.fetch_monitor,
                HealthEvent.now(
                    EventStatus.ERROR, duration_ms=_elapsed_ms(start), error_type=e.error_type
                ),
                schedule,
            )
            raise

        await self._report(
            self.fetch_monitor,
            HealthEvent.now(EventStatus.SUCCESS, duration_ms=_elapsed_ms(start)),
            schedule,
        )

        key = await self.cache.remember_alias(ref, final_url, bypass=bypass)
        await self.cache.put(key, page, bypass=bypass)
        return page.photos, page.title

    async def random_photo(
        self,
        album_url: str,
        use_cache: bool = True,
        screen_width: int | None = None,
        screen_height: int | None = None,
        schedule: Scheduler | None = None,
    ) -> PhotoPayload:
        ref = parse_album_url(album_url)
        if ref is None:
            raise InvalidAlbumUrlError(
                "Invalid Google Photos URL format. Please provide a valid shared album link "
                "(https://photos.app.goo.gl/... or https://photos.google.com/share/...)"
            )

        photos, album_name = await self.load_album(ref, use_cache=use_cache, schedule=schedule)
        photo = select_random(photos, self.rng)

        display_size = (
            screen_width or settings.eink_width,
            screen_height or settings.eink_height,
        )
        payload = build_payload(
            photo,
            album_name=album_name or settings.default_album_name,
            photo_count=len(photos),
            display_size=display_size,
            thumbnail_size=(settings.thumbnail_width, settings.thumbnail_height),
        )

        if self.brightness is not None:
            scores, event = await self.brightness.analyze(payload.photo_url)
            await self._report(self.brightness_monitor, event, schedule)
            if scores is not None:
                payload.background_class = background_class(
                    scores.edge_brightness_score, scores.brightness_score
                )

        log.info(f"Selected photo {obfuscate_id(photo.uid)} of {payload.photo_count}")
        return payload


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
