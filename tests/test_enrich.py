from datetime import UTC, datetime, timedelta

import pytest

from services.photos.enrich import (
    DEFAULT_BACKGROUND,
    aspect_ratio,
    background_class,
    epoch_ms_to_iso,
    fit_within,
    megapixels,
    optimized_url,
    relative_date,
)

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


def ago(**kwargs) -> str:
    return (NOW - timedelta(**kwargs)).isoformat()


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (1920, 1080, "16:9"),
        (1000, 1000, "1:1"),
        (3024, 4032, "3:4"),
        (4032, 3024, "4:3"),
        (1080, 1920, "9:16"),
        (5694, 4075, "4:3"),  # within 5% of 4:3
        (1000, 1100, "10:11"),  # no common ratio close enough
        (3000, 1000, "3:1"),
    ],
)
def test_aspect_ratio(width, height, expected):
    assert aspect_ratio(width, height) == expected


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (3024, 4032, 12),
        (1920, 1080, 2),
        (3840, 2160, 8.5),
        (400, 300, 0),
        (10000, 5050, 50.5),
    ],
)
def test_megapixels_round_to_half(width, height, expected):
    assert megapixels(width, height) == expected


def test_whole_megapixels_are_integers():
    assert isinstance(megapixels(3024, 4032), int)


@pytest.mark.parametrize(
    "timestamp, expected",
    [
        (ago(seconds=5), "Just now"),
        (ago(seconds=90), "1 minute ago"),
        (ago(hours=5), "5 hours ago"),
        (ago(days=1), "1 day ago"),
        (ago(days=3), "3 days ago"),
        (ago(days=45), "1 month ago"),
        (ago(days=730), "2 years ago"),
        ((NOW + timedelta(days=1)).isoformat(), "Just now"),
        ("not a date", "Just now"),
        ("", "Just now"),
    ],
)
def test_relative_date(timestamp, expected):
    assert relative_date(timestamp, now=NOW) == expected


def test_relative_date_accepts_zulu_and_naive_timestamps():
    assert relative_date("2024-05-29T12:00:00Z", now=NOW) == "3 days ago"
    assert relative_date("2024-05-29T12:00:00", now=NOW) == "3 days ago"


def test_epoch_ms_to_iso():
    assert epoch_ms_to_iso(1_535_348_376_000) == "2018-08-27T05:39:36Z"


def test_fit_within_preserves_ratio():
    assert fit_within(4032, 3024, 800, 480) == (640, 480)
    assert fit_within(3024, 4032, 800, 480) == (360, 480)
    assert fit_within(1920, 1080, 800, 480) == (800, 450)


def test_fit_within_never_enlarges():
    assert fit_within(640, 480, 800, 480) == (640, 480)
    assert fit_within(100, 50, 800, 480) == (100, 50)


def test_optimized_url_appends_size():
    url = optimized_url("https://lh3.googleusercontent.com/pw/abc", 4032, 3024, 800, 480)
    assert url == "https://lh3.googleusercontent.com/pw/abc=w640-h480"


@pytest.mark.parametrize(
    "edge, overall, expected",
    [
        (None, None, DEFAULT_BACKGROUND),
        (0, None, "bg--black"),
        (6.24, None, "bg--black"),
        (6.25, None, "bg--gray-10"),
        (50, None, "bg--gray-45"),
        (100, None, "bg--white"),
        (None, 0, "bg--black"),
        (0, 100, "bg--black"),  # edge wins
        (-5, None, "bg--black"),
        (150, None, "bg--white"),
    ],
)
def test_background_class(edge, overall, expected):
    assert background_class(edge, overall) == expected


def test_default_background_is_white():
    assert DEFAULT_BACKGROUND == "bg--white"
