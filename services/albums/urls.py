import re
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

SHORT_URL_RE = re.compile(r"^https://photos\.app\.goo\.gl/([A-Za-z0-9_-]+)/?$")
FULL_URL_RE = re.compile(r"^https://photos\.google\.com/share/([A-Za-z0-9_-]+)")
PHOTO_HOST_RE = re.compile(r"^lh[0-9]+\.googleusercontent\.com$")


class AlbumUrlType(StrEnum):
    SHORT = "short"
    FULL = "full"


@dataclass(frozen=True)
class AlbumRef:
    url: str
    album_id: str  # short code for SHORT links, share id for FULL links
    url_type: AlbumUrlType


def parse_album_url(url: str) -> AlbumRef | None:
    """Recognise a shared album link. Returns None for anything else."""
    url = (url or "").strip()
    if m := SHORT_URL_RE.match(url):
        return AlbumRef(url=url, album_id=m.group(1), url_type=AlbumUrlType.SHORT)
    if m := FULL_URL_RE.match(url):
        return AlbumRef(url=url, album_id=m.group(1), url_type=AlbumUrlType.FULL)
    return None


def canonical_album_id(url: str) -> str | None:
    """Share id of a full album link (e.g. the target of a short-link redirect)."""
    m = FULL_URL_RE.match(url or "")
    return m.group(1) if m else None


def is_photo_url(url) -> bool:
    """True only for https links on the Google photo CDN (lh3.googleusercontent.com etc)."""
    if not isinstance(url, str) or not url.startswith("https://"):
        return False
    lowered = url.lower()
    if "data:" in lowered or "javascript:" in lowered:
        return False
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return False
    return bool(PHOTO_HOST_RE.fullmatch(host))


# --- Log-safe rendering ---


def obfuscate_url(url: str | None, max_length: int = 40) -> str:
    """Keep scheme, host and a sliver of the path; album links are effectively secrets."""
    if not url:
        return "[no-url]"

    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url[: max(0, min(len(url) - 8, max_length - 6))] + "...***"

    prefix = f"{parts.scheme}://{parts.netloc}/"
    room = max_length - len(prefix) - 6
    if room <= 0:
        return f"{prefix}...***"

    path = parts.path.lstrip("/")
    if len(path) <= room:
        return f"{prefix}{path[:4]}...***"
    return f"{prefix}{path[:room]}...***"


def obfuscate_id(value: str | None) -> str:
    if not value:
        return "[no-id]"
    if len(value) <= 8:
        return value[:2] + "...***"
    return value[:4] + "...***"


def obfuscate_key(key: str | None) -> str:
    """`album:AF1QipN123...` -> `album:AF1Q...***`."""
    if not key:
        return "[no-key]"
    prefix, sep, rest = key.rpartition(":")
    if sep:
        return f"{prefix}:{obfuscate_id(rest)}"
    return key if len(key) <= 10 else key[:10] + "...***"
