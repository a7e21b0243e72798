"""Read-through/write-through cache of parsed album photo lists.

Key structure:
    album:{canonical share id}        -> CacheEntry JSON, TTL = cache_ttl_seconds
    album-alias:{short link code}     -> canonical share id, TTL = alias_ttl_seconds

Short and full links to the same album share one entry once the alias is
known (learned from the redirect target of the first live fetch).

Store failures never propagate out of this module: a failed read is a miss,
a failed write is a no-op. When the caller opts out of caching nothing is
read and nothing is written.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from config.settings import settings
from services.albums.models import AlbumPage, PhotoRecord
from services.albums.urls import (
    AlbumRef,
    AlbumUrlType,
    canonical_album_id,
    obfuscate_id,
    obfuscate_key,
)
from services.database import KeyValueStore
from services.errors import CacheError

log = logging.getLogger(__name__)

ALBUM_PREFIX = "album:"
ALIAS_PREFIX = "album-alias:"


def album_cache_key(album_id: str) -> str:
    return f"{ALBUM_PREFIX}{album_id}"


@dataclass
class CacheEntry:
    album_key: str
    photos: list[PhotoRecord]
    fetched_at: str  # ISO timestamp
    album_name: str | None = None

    @property
    def photo_count(self) -> int:
        return len(self.photos)

    def to_dict(self) -> dict:
        return {
            "album_key": self.album_key,
            "fetched_at": self.fetched_at,
            "album_name": self.album_name,
            "photo_count": self.photo_count,
            "photos": [p.to_dict() for p in self.photos],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        return cls(
            album_key=data["album_key"],
            photos=[PhotoRecord.from_dict(p) for p in data["photos"]],
            fetched_at=data["fetched_at"],
            album_name=data.get("album_name"),
        )


class AlbumCache:
    def __init__(
        self,
        store: KeyValueStore | None,
        ttl_seconds: int | None = None,
        alias_ttl_seconds: int | None = None,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds or settings.cache_ttl_seconds
        self.alias_ttl_seconds = alias_ttl_seconds or settings.alias_ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.store is not None

    async def resolve_key(self, ref: AlbumRef, bypass: bool = False) -> str:
        """Cache key for an album link. Unknown short links fall back to their own code."""
        if ref.url_type == AlbumUrlType.FULL or bypass or not self.enabled:
            return album_cache_key(ref.album_id)

        try:
            canonical = await self.store.get(f"{ALIAS_PREFIX}{ref.album_id}")
        except CacheError as e:
            log.error(f"Alias lookup error for {obfuscate_id(ref.album_id)}: {e}")
            canonical = None
        return album_cache_key(canonical or ref.album_id)

    async def get(self, album_key: str, bypass: bool = False) -> CacheEntry | None:
        if bypass or not self.enabled:
            return None

        try:
            raw = await self.store.get(album_key)
        except CacheError as e:
            log.error(f"Cache lookup error for {obfuscate_key(album_key)}: {e}")
            return None

        if not raw:
            log.info(f"Cache MISS for {obfuscate_key(album_key)}")
            return None

        try:
            entry = CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            log.warning(f"Discarding unreadable cache entry {obfuscate_key(album_key)}: {e}")
            return None

        if not entry.photos:
            return None
        log.info(f"Cache HIT for {obfuscate_key(album_key)} ({entry.photo_count} photos)")
        return entry

    async def put(
        self, album_key: str, page: AlbumPage, bypass: bool = False
    ) -> CacheEntry | None:
        """Store a freshly parsed album. Empty albums are never cached."""
        if bypass or not self.enabled or not page.photos:
            return None

        entry = CacheEntry(
            album_key=album_key,
            photos=list(page.photos),
            fetched_at=datetime.now(UTC).isoformat(),
            album_name=page.title,
        )
        try:
            await self.store.put(album_key, entry.to_dict(), ttl_seconds=self.ttl_seconds)
        except CacheError as e:
            log.error(f"Cache storage error for {obfuscate_key(album_key)}: {e}")
            return None

        log.info(
            f"Cache STORED for {obfuscate_key(album_key)} "
            f"({entry.photo_count} photos, TTL: {self.ttl_seconds}s)"
        )
        return entry

    async def remember_alias(self, ref: AlbumRef, final_url: str, bypass: bool = False) -> str:
        """Learn the canonical album key from where a fetch ended up.

        Returns the key the album should be stored under.
        """
        canonical = canonical_album_id(final_url)
        if ref.url_type == AlbumUrlType.FULL or not canonical:
            return album_cache_key(ref.album_id)

        if not bypass and self.enabled:
            try:
                await self.store.put(
                    f"{ALIAS_PREFIX}{ref.album_id}",
                    canonical,
                    ttl_seconds=self.alias_ttl_seconds,
                )
            except CacheError as e:
                log.error(f"Alias storage error for {obfuscate_id(ref.album_id)}: {e}")
        return album_cache_key(canonical)
