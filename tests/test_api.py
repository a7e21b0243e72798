import httpx
import pytest
from fastapi.testclient import TestClient

from main import app, get_monitors, get_photo_service
from services.albums.extractor import AlbumExtractor
from services.cache.album_cache import AlbumCache
from services.health.monitor import AlertPolicy, HealthMonitor
from services.photos.service import PhotoService
from tests.helpers import FULL_URL, album_html, photo_entry


def serve(status=200, html=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if status != 200:
            return httpx.Response(status)
        return httpx.Response(200, text=html or album_html([photo_entry("AF1QipA")]))

    return handler


@pytest.fixture
def client_for():
    def make(handler) -> TestClient:
        extractor = AlbumExtractor(
            transport=httpx.MockTransport(handler), timeout=1.0, max_attempts=1, backoff=0
        )
        service = PhotoService(extractor=extractor, cache=AlbumCache(None))
        app.dependency_overrides[get_photo_service] = lambda: service
        app.dependency_overrides[get_monitors] = lambda: [
            HealthMonitor(None, webhook_url="", policy=AlertPolicy())
        ]
        return TestClient(app)

    yield make
    app.dependency_overrides.clear()


def test_photo_success(client_for):
    client = client_for(serve())

    resp = client.post("/photo", json={"album_url": FULL_URL})

    assert resp.status_code == 200
    data = resp.json()
    assert data["photo_url"] == "https://lh3.googleusercontent.com/pw/abc123=w640-h480"
    assert data["thumbnail_url"] == "https://lh3.googleusercontent.com/pw/abc123=w400-h300"
    assert data["album_name"] == "Summer Trip"
    assert data["photo_count"] == 1
    assert data["aspect_ratio"] == "4:3"
    assert data["megapixels"] == 12
    assert data["background_class"] == "bg--white"
    assert data["metadata"]["uid"] == "AF1QipA"


def test_photo_with_screen_size(client_for):
    client = client_for(serve())

    resp = client.post(
        "/photo", json={"album_url": FULL_URL, "screen_width": 400, "screen_height": 400}
    )

    assert resp.json()["photo_url"].endswith("=w400-h300")


def test_invalid_url_is_400(client_for):
    client = client_for(serve())

    resp = client.post("/photo", json={"album_url": "https://example.com/not-an-album"})

    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "invalid_input"


def test_missing_url_is_422(client_for):
    client = client_for(serve())

    assert client.post("/photo", json={"album_url": ""}).status_code == 422
    assert client.post("/photo", json={}).status_code == 422


@pytest.mark.parametrize(
    "status, http_status, error",
    [
        (404, 404, "album_not_found"),
        (403, 403, "album_access_denied"),
        (500, 502, "network_error"),
    ],
)
def test_upstream_failures_are_mapped(client_for, status, http_status, error):
    client = client_for(serve(status))

    resp = client.post("/photo", json={"album_url": FULL_URL})

    assert resp.status_code == http_status
    assert resp.json()["detail"]["error"] == error


def test_empty_album_is_404(client_for):
    client = client_for(serve(html=album_html([["broken"]])))

    resp = client.post("/photo", json={"album_url": FULL_URL})

    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "empty_album"


def test_unparsable_page_is_502(client_for):
    client = client_for(serve(html="<html><body>Sign in</body></html>"))

    resp = client.post("/photo", json={"album_url": FULL_URL})

    assert resp.status_code == 502
    assert resp.json()["detail"]["error"] == "parse_error"


def test_health(client_for):
    client = client_for(serve())

    resp = client.get("/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["monitors"] == {"album_fetch": None}
