"""Display metadata derived from a photo's dimensions, dates and brightness.

All functions here are pure; bad input degrades to a documented fallback
instead of raising.
"""

from datetime import UTC, datetime
from math import floor, gcd

# (label, width/height); ordered so ties go to the simpler ratio
COMMON_RATIOS = [
    ("1:1", 1.0),
    ("4:3", 4 / 3),
    ("3:4", 3 / 4),
    ("16:9", 16 / 9),
    ("9:16", 9 / 16),
]
RATIO_TOLERANCE = 0.05  # relative

# 16-level e-ink palette, darkest to lightest
BACKGROUND_CLASSES = [
    "bg--black",
    "bg--gray-10",
    "bg--gray-15",
    "bg--gray-20",
    "bg--gray-25",
    "bg--gray-30",
    "bg--gray-35",
    "bg--gray-40",
    "bg--gray-45",
    "bg--gray-50",
    "bg--gray-55",
    "bg--gray-60",
    "bg--gray-65",
    "bg--gray-70",
    "bg--gray-75",
    "bg--white",
]
DEFAULT_BACKGROUND = "bg--white"

_RELATIVE_UNITS = [
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
]


def aspect_ratio(width: int, height: int) -> str:
    """Simplified aspect ratio, snapped to a common ratio when within 5%.

    >>> aspect_ratio(1920, 1080)
    '16:9'
    >>> aspect_ratio(1000, 1100)
    '10:11'
    """
    if width <= 0 or height <= 0:
        return "1:1"

    actual = width / height
    best = min(COMMON_RATIOS, key=lambda r: abs(actual - r[1]) / r[1])
    if abs(actual - best[1]) / best[1] <= RATIO_TOLERANCE:
        return best[0]

    divisor = gcd(width, height)
    return f"{width // divisor}:{height // divisor}"


def megapixels(width: int, height: int) -> float:
    """Megapixels rounded to the nearest 0.5. 3024x4032 -> 12, 3840x2160 -> 8.5."""
    mp = floor(width * height / 1_000_000 * 2 + 0.5) / 2
    return int(mp) if mp.is_integer() else mp


def _parse_iso(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def relative_date(iso_timestamp: str, now: datetime | None = None) -> str:
    """Humanize a timestamp using its coarsest unit ("3 days ago").

    Anything under a minute old, in the future, or unparsable is "Just now".
    """
    then = _parse_iso(iso_timestamp)
    if then is None:
        return "Just now"

    elapsed = ((now or datetime.now(UTC)) - then).total_seconds()
    for unit, seconds in _RELATIVE_UNITS:
        count = int(elapsed // seconds)
        if count >= 1:
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return "Just now"


def epoch_ms_to_iso(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=UTC).isoformat().replace("+00:00", "Z")


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Largest size inside (max_width, max_height) with the photo's aspect ratio.

    Never larger than the original; never cropped.
    """
    if width <= 0 or height <= 0:
        return max_width, max_height

    scale = min(max_width / width, max_height / height, 1.0)
    return max(1, round(width * scale)), max(1, round(height * scale))


def sized_url(base_url: str, width: int, height: int) -> str:
    """Append a Google Photos size directive (`=w800-h480`)."""
    return f"{base_url}=w{width}-h{height}"


def optimized_url(
    base_url: str, width: int, height: int, max_width: int, max_height: int
) -> str:
    return sized_url(base_url, *fit_within(width, height, max_width, max_height))


def background_class(
    edge_brightness: float | None = None, brightness: float | None = None
) -> str:
    """Map a 0-100 brightness score onto one of 16 background shades.

    Edge brightness takes precedence over overall brightness. No score at
    all gives the neutral default.
    """
    score = edge_brightness if edge_brightness is not None else brightness
    if score is None:
        return DEFAULT_BACKGROUND

    score = max(0.0, min(100.0, float(score)))
    bucket = min(int(score / (100 / len(BACKGROUND_CLASSES))), len(BACKGROUND_CLASSES) - 1)
    return BACKGROUND_CLASSES[bucket]
