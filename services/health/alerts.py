import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx

from services.errors import AlertDispatchError

if TYPE_CHECKING:
    from services.health.monitor import AlertPolicy, AlertStats

log = logging.getLogger(__name__)

ALERT_COLOR = 0xFFA500  # orange
FOOTER = "Photo Frame health monitor"


def build_alert_payload(name: str, stats: "AlertStats", policy: "AlertPolicy") -> dict:
    """Discord-style embed describing a failure-rate spike."""
    failures = stats.timeouts + stats.errors
    return {
        "embeds": [
            {
                "title": f"⚠️ {name.replace('_', ' ').title()} Alert",
                "description": f"High failure rate detected for {name}",
                "color": ALERT_COLOR,
                "fields": [
                    {
                        "name": "📊 Failure Rate",
                        "value": (
                            f"**{stats.failure_rate:.1%}** "
                            f"({failures}/{stats.total_attempts} requests, "
                            f"{stats.timeouts} timeouts)"
                        ),
                        "inline": True,
                    },
                    {
                        "name": "✅ Success Rate",
                        "value": (
                            f"{stats.success_rate:.1%} "
                            f"({stats.successes}/{stats.total_attempts} requests)"
                        ),
                        "inline": True,
                    },
                    {
                        "name": "❌ Errors",
                        "value": f"{stats.errors} errors",
                        "inline": True,
                    },
                    {
                        "name": "⏱️ Avg Duration",
                        "value": f"{stats.avg_duration_ms:.0f}ms (successful requests)",
                        "inline": True,
                    },
                    {
                        "name": "🎯 Threshold",
                        "value": f"{policy.failure_threshold:.0%} (crossed)",
                        "inline": True,
                    },
                    {
                        "name": "📅 Time Window",
                        "value": f"Last {stats.total_attempts} requests",
                        "inline": True,
                    },
                ],
                "footer": {"text": FOOTER},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        ]
    }


class AlertDispatcher:
    """Posts alert payloads to an operator webhook. Single attempt, no retries."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    async def send(self, name: str, stats: "AlertStats", policy: "AlertPolicy"):
        payload = build_alert_payload(name, stats, policy)
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                resp = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise AlertDispatchError(f"webhook request failed: {e}") from e

        if not resp.is_success:
            raise AlertDispatchError(
                f"webhook returned {resp.status_code} {resp.reason_phrase}".strip()
            )
        log.info(f"Alert delivered for {name} ({stats.failure_rate:.1%} failure rate)")
