import json

SHORT_URL = "https://photos.app.goo.gl/QKGRYqfdS15bj8Kr5"
FULL_URL = "https://photos.google.com/share/AF1QipMZNuJ5JH6n3yF"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def photo_entry(
    uid: str,
    url: str = "https://lh3.googleusercontent.com/pw/abc123",
    width=4032,
    height=3024,
    updated=1_535_348_376_000,
    added=1_565_370_026_893,
    *extra,
) -> list:
    return [uid, [url, width, height], updated, None, None, added, *extra]


def album_html(entries, title: str | None = "Summer Trip") -> str:
    """A page shaped like a shared album: a small unrelated payload plus the photo list."""
    photos = (
        "{key: 'ds:1', hash: '2', data:"
        + json.dumps([None, entries, None])
        + ", sideChannel: {}}"
    )
    other = "{key: 'ds:0', hash: '1', data:['AF1Qip', null], sideChannel: {}}"
    meta = f'<meta property="og:title" content="{title}">' if title else ""
    return (
        f"<html><head>{meta}</head><body>"
        f'<script nonce="n1">AF_initDataCallback({other});</script>'
        f'<script nonce="n2">AF_initDataCallback({photos});</script>'
        "<script>window.WIZ_global_data = {};</script>"
        "</body></html>"
    )
