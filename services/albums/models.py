from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class PhotoRecord:
    """One photo as extracted from an album page. Dates are epoch milliseconds."""

    uid: str
    url: str
    width: int
    height: int
    image_update_date: int
    album_add_date: int
    caption: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PhotoRecord":
        return cls(
            uid=data["uid"],
            url=data["url"],
            width=int(data["width"]),
            height=int(data["height"]),
            image_update_date=int(data["image_update_date"]),
            album_add_date=int(data["album_add_date"]),
            caption=data.get("caption"),
        )


@dataclass
class AlbumPage:
    """Everything we could pull out of one album page."""

    photos: list[PhotoRecord] = field(default_factory=list)
    title: str | None = None


@dataclass
class FetchedAlbum:
    """An album page as fetched: raw HTML plus the URL we ended up on after redirects."""

    html: str
    final_url: str
    status_code: int = 200
