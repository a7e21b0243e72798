import json

import httpx
import pytest

from services.errors import AlertDispatchError
from services.health.alerts import ALERT_COLOR, AlertDispatcher, build_alert_payload
from services.health.monitor import AlertPolicy, AlertStats

WEBHOOK = "https://discord.example/api/webhooks/1/abc"

STATS = AlertStats(
    total_attempts=20,
    successes=15,
    timeouts=2,
    errors=3,
    failure_rate=0.25,
    success_rate=0.75,
    avg_duration_ms=812.4,
    window_start="2024-06-01T11:00:00+00:00",
    window_end="2024-06-01T12:00:00+00:00",
)


def test_payload_describes_the_spike():
    payload = build_alert_payload("album_fetch", STATS, AlertPolicy())

    embed = payload["embeds"][0]
    fields = {f["name"]: f["value"] for f in embed["fields"]}
    assert embed["title"] == "⚠️ Album Fetch Alert"
    assert embed["color"] == ALERT_COLOR
    assert fields["📊 Failure Rate"] == "**25.0%** (5/20 requests, 2 timeouts)"
    assert fields["✅ Success Rate"] == "75.0% (15/20 requests)"
    assert fields["❌ Errors"] == "3 errors"
    assert fields["⏱️ Avg Duration"] == "812ms (successful requests)"
    assert fields["🎯 Threshold"] == "10% (crossed)"
    assert fields["📅 Time Window"] == "Last 20 requests"


async def test_dispatcher_posts_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(204)

    dispatcher = AlertDispatcher(WEBHOOK, transport=httpx.MockTransport(handler))
    await dispatcher.send("album_fetch", STATS, AlertPolicy())

    assert len(received) == 1
    assert str(received[0].url) == WEBHOOK
    assert json.loads(received[0].content)["embeds"][0]["color"] == ALERT_COLOR


async def test_dispatcher_raises_on_rejected_webhook():
    dispatcher = AlertDispatcher(
        WEBHOOK, transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )
    with pytest.raises(AlertDispatchError, match="500"):
        await dispatcher.send("album_fetch", STATS, AlertPolicy())


async def test_dispatcher_raises_on_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    dispatcher = AlertDispatcher(WEBHOOK, transport=httpx.MockTransport(handler))
    with pytest.raises(AlertDispatchError):
        await dispatcher.send("album_fetch", STATS, AlertPolicy())
