"""Client for an external image-insights API that scores photo brightness.

The score only picks a background shade, so every failure path returns None
and the photo is served without it.
"""

import logging
import time
from dataclasses import dataclass

import httpx

from config.settings import settings
from services.albums.urls import obfuscate_url
from services.health.monitor import EventStatus, HealthEvent

log = logging.getLogger(__name__)

ANALYSIS_ENDPOINT = "/v1/image/analysis/url"
EDGE_MODE = "left_right"  # left/right 10% strips of the image


@dataclass
class BrightnessScores:
    edge_brightness_score: float | None
    brightness_score: float | None


class BrightnessAnalyzer:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if base_url is None:
            base_url = settings.brightness_api_url
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.brightness_timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def analyze(self, photo_url: str) -> tuple[BrightnessScores | None, HealthEvent]:
        """Score a photo. Returns (scores or None, outcome event for the health monitor)."""
        if not self.enabled:
            return None, HealthEvent.now(EventStatus.SKIPPED)

        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.base_url}{ANALYSIS_ENDPOINT}",
                    json={"url": photo_url, "metrics": "brightness", "edge_mode": EDGE_MODE},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException:
            elapsed = _elapsed_ms(start)
            log.warning(f"Brightness analysis timed out after {elapsed:.0f}ms")
            return None, HealthEvent.now(
                EventStatus.TIMEOUT, duration_ms=elapsed, error_type="timeout"
            )
        except (httpx.HTTPError, ValueError) as e:
            elapsed = _elapsed_ms(start)
            log.warning(
                f"Brightness analysis failed for {obfuscate_url(photo_url)} "
                f"after {elapsed:.0f}ms: {e}"
            )
            return None, HealthEvent.now(
                EventStatus.ERROR, duration_ms=elapsed, error_type=type(e).__name__
            )

        elapsed = _elapsed_ms(start)
        if not isinstance(data, dict):
            data = {}
        scores = BrightnessScores(
            edge_brightness_score=_score(data.get("edge_brightness_score")),
            brightness_score=_score(data.get("brightness_score")),
        )
        log.info(
            f"Brightness scores edge={scores.edge_brightness_score} "
            f"overall={scores.brightness_score} in {elapsed:.0f}ms"
        )
        return scores, HealthEvent.now(EventStatus.SUCCESS, duration_ms=elapsed)


def _score(value) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
