"""Album page fetching and photo extraction.

Shared album pages carry their photo list inside inline scripts of the form
``AF_initDataCallback({key: 'ds:1', hash: '2', data: [...], sideChannel: {}});``.
The object literal is not strict JSON (bare keys, single quotes), so it goes
through json5. The format is undocumented and unversioned: everything that
knows about its shape lives in ``photo_from_entry`` and ``_photo_entries``.

Observed entry layout (``data[1][i]``):
    [0] uid
    [1] [url, width, height]
    [2] image update date (epoch ms)
    [5] date added to album (epoch ms)
    [6+] sometimes a caption, directly or one level nested
"""

import logging
import re
from collections.abc import Sequence

import httpx
import json5
from bs4 import BeautifulSoup
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from services.albums.models import AlbumPage, FetchedAlbum, PhotoRecord
from services.albums.urls import is_photo_url, obfuscate_url
from services.errors import EmptyAlbumError, NetworkError, ParseError

log = logging.getLogger(__name__)

CALLBACK_RE = re.compile(r"AF_initDataCallback\((\{.*\})\)\s*;?\s*$", re.DOTALL)
DATA_KEY_RE = re.compile(r"\bdata\s*:")
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}
MAX_CAPTION_LENGTH = 1000
MAX_ALBUM_NAME_LENGTH = 500
MAX_PHOTO_COUNT = 50_000


class _RetryableStatus(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.TransportError, _RetryableStatus))


# --- Payload adapter ---


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_caption(value) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not 0 < len(text) < MAX_CAPTION_LENGTH or text.startswith(("AF1", "http")):
        return None
    return text


def _find_caption(extra: Sequence) -> str | None:
    for elem in extra:
        candidates = elem if isinstance(elem, list) else [elem]
        for candidate in candidates:
            if caption := _as_caption(candidate):
                return caption
    return None


def photo_from_entry(entry) -> PhotoRecord | None:
    """Map one positional upstream entry to a PhotoRecord, or None if it doesn't fit."""
    if not isinstance(entry, list) or len(entry) < 6:
        return None

    uid, detail, updated, added = entry[0], entry[1], entry[2], entry[5]
    if not isinstance(uid, str) or not uid:
        return None
    if not _is_number(updated) or not _is_number(added):
        return None
    if not isinstance(detail, list) or len(detail) < 3:
        return None

    url, width, height = detail[0], detail[1], detail[2]
    if not is_photo_url(url):
        return None
    if not _is_number(width) or not _is_number(height) or width <= 0 or height <= 0:
        return None

    return PhotoRecord(
        uid=uid,
        url=url,
        width=int(width),
        height=int(height),
        image_update_date=int(updated),
        album_add_date=int(added),
        caption=_find_caption(entry[6:]),
    )


def _photo_entries(payload) -> list:
    if not isinstance(payload, dict) or "data" not in payload:
        raise ParseError("Album payload has no 'data' member")
    data = payload["data"]
    if not isinstance(data, list) or len(data) < 2:
        raise ParseError("Album payload 'data' is not the expected array")
    entries = data[1]
    if entries is None:
        return []  # upstream sends null for albums without photos
    if not isinstance(entries, list):
        raise ParseError("Album payload photo list is not an array")
    return entries


# --- Page parsing (pure) ---


def find_payload_blocks(soup: BeautifulSoup) -> list[str]:
    """All AF_initDataCallback object literals that carry a data member."""
    blocks = []
    for script in soup.find_all("script"):
        text = script.string or script.get_text()
        if not text or "AF_initDataCallback" not in text:
            continue
        m = CALLBACK_RE.search(text.strip())
        if m and DATA_KEY_RE.search(m.group(1)):
            blocks.append(m.group(1))
    return blocks


def _album_title(soup: BeautifulSoup) -> str | None:
    tag = soup.find("meta", attrs={"property": "og:title"})
    if not tag or not tag.get("content"):
        return None
    title = tag["content"].strip()
    if len(title) > MAX_ALBUM_NAME_LENGTH:
        log.warning(f"Ignoring album title of {len(title)} chars")
        return None
    return title or None


def parse_album_page(html: str) -> AlbumPage:
    """Extract photos from album page HTML.

    The largest qualifying payload block is assumed to be the photo list.
    Malformed entries, and entries whose image is not on the Google photo
    CDN, are dropped one by one; an album left with no photos raises
    EmptyAlbumError.
    """
    soup = BeautifulSoup(html, "html.parser")
    blocks = find_payload_blocks(soup)
    if not blocks:
        raise ParseError("No embedded album payload found in page")

    largest = max(blocks, key=len)
    try:
        payload = json5.loads(largest)
    except ValueError as e:
        raise ParseError(f"Embedded album payload is malformed: {e}") from e

    entries = _photo_entries(payload)
    photos = [p for p in (photo_from_entry(e) for e in entries) if p is not None]

    dropped = len(entries) - len(photos)
    if dropped:
        log.warning(f"Dropped {dropped}/{len(entries)} album entries with unexpected shape")

    if not photos:
        raise EmptyAlbumError(
            "No photos found in album. Ensure the album is publicly shared "
            "and contains photos (not videos)."
        )
    if len(photos) > MAX_PHOTO_COUNT:
        log.warning(f"Album has {len(photos)} photos, keeping the first {MAX_PHOTO_COUNT}")
        photos = photos[:MAX_PHOTO_COUNT]

    return AlbumPage(photos=photos, title=_album_title(soup))


# --- Fetching ---


class AlbumExtractor:
    """Fetches shared album pages and turns them into photo records."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        backoff: float | None = None,
    ):
        self.transport = transport
        self.timeout = timeout if timeout is not None else settings.fetch_timeout
        self.max_attempts = max_attempts or settings.fetch_max_attempts
        self.backoff = backoff if backoff is not None else settings.fetch_retry_backoff

    async def fetch_page(self, url: str) -> FetchedAlbum:
        """GET the album page, retrying transient failures with exponential backoff."""
        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": settings.fetch_user_agent},
        ) as client:
            try:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.max_attempts),
                    wait=wait_exponential(multiplier=self.backoff, max=10),
                    retry=retry_if_exception(_is_transient),
                    before_sleep=before_sleep_log(log, logging.WARNING),
                    reraise=True,
                ):
                    with attempt:
                        resp = await client.get(url)
                        if resp.status_code in RETRYABLE_STATUSES:
                            raise _RetryableStatus(resp)
            except httpx.TimeoutException as e:
                raise NetworkError(
                    f"Timed out fetching album after {self.max_attempts} attempts",
                    error_type="timeout",
                ) from e
            except httpx.TransportError as e:
                raise NetworkError(f"Failed to reach album: {e}") from e
            except _RetryableStatus as e:
                raise NetworkError(
                    f"Album fetch failed with HTTP {e.response.status_code}",
                    upstream_status=e.response.status_code,
                ) from e

        if resp.status_code == 404:
            raise NetworkError(
                "Album not found. The album may have been deleted or made private.",
                error_type="album_not_found",
                upstream_status=404,
            )
        if resp.status_code == 403:
            raise NetworkError(
                "Album access denied. Ensure the album has link sharing enabled.",
                error_type="album_access_denied",
                upstream_status=403,
            )
        if resp.is_error:
            raise NetworkError(
                f"Album fetch failed with HTTP {resp.status_code}",
                upstream_status=resp.status_code,
            )

        log.info(f"Fetched {obfuscate_url(url)}: {len(resp.text)} bytes")
        return FetchedAlbum(html=resp.text, final_url=str(resp.url), status_code=resp.status_code)

    async def extract(self, url: str) -> tuple[AlbumPage, str]:
        """Fetch and parse an album. Returns the page and the post-redirect URL."""
        fetched = await self.fetch_page(url)
        return parse_album_page(fetched.html), fetched.final_url
