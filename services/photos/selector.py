import random
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

from services.albums.models import PhotoRecord
from services.errors import EmptyAlbumError
from services.photos.enrich import (
    aspect_ratio,
    background_class,
    epoch_ms_to_iso,
    megapixels,
    optimized_url,
    relative_date,
)


@dataclass
class PhotoPayload:
    """What a display client gets for one request."""

    photo_url: str
    thumbnail_url: str
    caption: str | None
    timestamp: str
    album_name: str
    photo_count: int
    relative_date: str
    aspect_ratio: str
    megapixels: float
    background_class: str
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def select_random(photos: list[PhotoRecord], rng: random.Random | None = None) -> PhotoRecord:
    if not photos:
        raise EmptyAlbumError("No photos available to select from")
    return (rng or random).choice(photos)


def build_payload(
    photo: PhotoRecord,
    *,
    album_name: str,
    photo_count: int,
    display_size: tuple[int, int],
    thumbnail_size: tuple[int, int],
) -> PhotoPayload:
    """Enriched payload for one photo. The background starts neutral until brightness is known."""
    image_update_date = epoch_ms_to_iso(photo.image_update_date)
    return PhotoPayload(
        photo_url=optimized_url(photo.url, photo.width, photo.height, *display_size),
        thumbnail_url=optimized_url(photo.url, photo.width, photo.height, *thumbnail_size),
        caption=photo.caption,
        timestamp=datetime.now(UTC).isoformat(),
        album_name=album_name,
        photo_count=photo_count,
        relative_date=relative_date(image_update_date),
        aspect_ratio=aspect_ratio(photo.width, photo.height),
        megapixels=megapixels(photo.width, photo.height),
        background_class=background_class(),
        metadata={
            "uid": photo.uid,
            "original_width": photo.width,
            "original_height": photo.height,
            "image_update_date": image_update_date,
            "album_add_date": epoch_ms_to_iso(photo.album_add_date),
        },
    )
