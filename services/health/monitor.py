"""Sliding-window failure-rate monitor with cooldown-limited alerts.

The decision logic is a set of pure functions over an explicit MonitorState
(`track_event`, `evaluate`, `record_alert`). `HealthMonitor` loads that state
from the key/value store, runs the functions and writes the result back.

Storage layout (per monitor name):
    health:{name}:events      -> last N events, oldest first
    health:{name}:last_alert  -> epoch seconds of the last delivered alert

Reads and writes are not transactional. Concurrent requests can overwrite
each other's window update and lose an event; the rate is approximate.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum

from config.settings import settings
from services.database import KeyValueStore
from services.errors import AlertDispatchError, CacheError
from services.health.alerts import AlertDispatcher

log = logging.getLogger(__name__)


class EventStatus(StrEnum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"
    SKIPPED = "skipped"  # no attempt made (cache hit, feature disabled)


FAILURE_STATUSES = {EventStatus.TIMEOUT, EventStatus.ERROR}


@dataclass
class HealthEvent:
    timestamp: str
    status: EventStatus
    duration_ms: float | None = None
    error_type: str | None = None

    @classmethod
    def now(
        cls,
        status: EventStatus,
        duration_ms: float | None = None,
        error_type: str | None = None,
    ) -> "HealthEvent":
        return cls(
            timestamp=datetime.now(UTC).isoformat(),
            status=status,
            duration_ms=duration_ms,
            error_type=error_type,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "HealthEvent":
        return cls(
            timestamp=data["timestamp"],
            status=EventStatus(data["status"]),
            duration_ms=data.get("duration_ms"),
            error_type=data.get("error_type"),
        )


@dataclass
class MonitorState:
    events: list[HealthEvent] = field(default_factory=list)
    last_alert_at: float | None = None  # epoch seconds


@dataclass(frozen=True)
class AlertPolicy:
    window_size: int = 100
    min_samples: int = 20
    failure_threshold: float = 0.10
    cooldown_seconds: float = 3600
    cooldown_on_failed_dispatch: bool = False

    @classmethod
    def from_settings(cls) -> "AlertPolicy":
        return cls(
            window_size=settings.health_window_size,
            min_samples=settings.health_min_samples,
            failure_threshold=settings.health_failure_threshold,
            cooldown_seconds=settings.health_cooldown_seconds,
            cooldown_on_failed_dispatch=settings.alert_cooldown_on_failed_dispatch,
        )


@dataclass
class AlertStats:
    total_attempts: int
    successes: int
    timeouts: int
    errors: int
    failure_rate: float
    success_rate: float
    avg_duration_ms: float  # successful attempts only
    window_start: str
    window_end: str


@dataclass
class Decision:
    should_alert: bool
    reason: str
    stats: AlertStats | None = None


# --- Pure decision logic ---


def track_event(state: MonitorState, event: HealthEvent, capacity: int) -> MonitorState:
    """Append an event and keep only the newest `capacity`. Skipped events are ignored."""
    if event.status == EventStatus.SKIPPED:
        return state
    events = [*state.events, event][-capacity:] if capacity > 0 else []
    return replace(state, events=events)


def compute_stats(events: list[HealthEvent]) -> AlertStats:
    total = len(events)
    successes = sum(1 for e in events if e.status == EventStatus.SUCCESS)
    timeouts = sum(1 for e in events if e.status == EventStatus.TIMEOUT)
    failures = sum(1 for e in events if e.status in FAILURE_STATUSES)
    durations = [
        e.duration_ms for e in events if e.status == EventStatus.SUCCESS and e.duration_ms
    ]

    return AlertStats(
        total_attempts=total,
        successes=successes,
        timeouts=timeouts,
        errors=failures - timeouts,
        failure_rate=failures / total if total else 0.0,
        success_rate=successes / total if total else 0.0,
        avg_duration_ms=sum(durations) / len(durations) if durations else 0.0,
        window_start=events[0].timestamp if events else "N/A",
        window_end=events[-1].timestamp if events else "N/A",
    )


def evaluate(state: MonitorState, now: float, policy: AlertPolicy) -> Decision:
    """Alert iff enough samples, failure rate at/over threshold, and cooldown elapsed."""
    if len(state.events) < policy.min_samples:
        return Decision(False, "insufficient_samples")

    stats = compute_stats(state.events)
    if stats.failure_rate < policy.failure_threshold:
        return Decision(False, "below_threshold", stats)

    if state.last_alert_at is not None and now - state.last_alert_at < policy.cooldown_seconds:
        return Decision(False, "cooldown", stats)

    return Decision(True, "threshold_crossed", stats)


def record_alert(state: MonitorState, now: float) -> MonitorState:
    """Mark an alert as sent. last_alert_at never moves backwards."""
    last = now if state.last_alert_at is None else max(state.last_alert_at, now)
    return replace(state, last_alert_at=last)


# --- Persisted monitor ---


class HealthMonitor:
    """Tracks outcomes of one operation and alerts when its failure rate spikes.

    Inert unless both a store and a webhook URL are configured.
    """

    def __init__(
        self,
        store: KeyValueStore | None,
        webhook_url: str | None = None,
        name: str = "album_fetch",
        policy: AlertPolicy | None = None,
        dispatcher: AlertDispatcher | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.webhook_url = webhook_url if webhook_url is not None else settings.alert_webhook_url
        self.name = name
        self.policy = policy or AlertPolicy.from_settings()
        self.dispatcher = dispatcher or (
            AlertDispatcher(self.webhook_url) if self.webhook_url else None
        )
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.store is not None and bool(self.webhook_url)

    @property
    def events_key(self) -> str:
        return f"health:{self.name}:events"

    @property
    def last_alert_key(self) -> str:
        return f"health:{self.name}:last_alert"

    async def load_state(self) -> MonitorState:
        raw_events = await self.store.get(self.events_key)
        events = []
        if isinstance(raw_events, list):
            for raw in raw_events:
                try:
                    events.append(HealthEvent.from_dict(raw))
                except (KeyError, TypeError, ValueError):
                    continue
        last_alert = await self.store.get(self.last_alert_key)
        return MonitorState(
            events=events,
            last_alert_at=float(last_alert) if isinstance(last_alert, (int, float)) else None,
        )

    async def track(self, event: HealthEvent) -> MonitorState | None:
        """Append an event to the persisted window. Returns the new state."""
        if not self.enabled or event.status == EventStatus.SKIPPED:
            return None

        state = track_event(await self.load_state(), event, self.policy.window_size)
        await self.store.put(
            self.events_key,
            [e.to_dict() for e in state.events],
            ttl_seconds=settings.health_state_ttl_seconds,
        )
        return state

    async def evaluate_and_alert(self, state: MonitorState | None = None) -> bool:
        """Check the window and send an alert if warranted. Returns True if one was delivered."""
        if not self.enabled:
            return False

        state = state or await self.load_state()
        now = self.clock()
        decision = evaluate(state, now, self.policy)
        if not decision.should_alert:
            if decision.reason == "cooldown":
                remaining = self.policy.cooldown_seconds - (now - state.last_alert_at)
                log.info(
                    f"[{self.name}] Alert suppressed, {remaining / 60:.0f} min of cooldown left"
                )
            return False

        delivered = True
        try:
            await self.dispatcher.send(self.name, decision.stats, self.policy)
        except AlertDispatchError as e:
            log.error(f"[{self.name}] Failed to deliver alert: {e}")
            delivered = False
            if not self.policy.cooldown_on_failed_dispatch:
                return False

        state = record_alert(state, now)
        await self.store.put(
            self.last_alert_key,
            state.last_alert_at,
            ttl_seconds=settings.health_state_ttl_seconds,
        )
        if delivered:
            log.warning(
                f"[{self.name}] Alert sent at {decision.stats.failure_rate:.1%} failure rate; "
                f"cooldown {self.policy.cooldown_seconds / 60:.0f} min"
            )
        return delivered

    async def observe(self, event: HealthEvent):
        """Track then evaluate. Never raises storage or dispatch failures."""
        if not self.enabled or event.status == EventStatus.SKIPPED:
            return
        try:
            state = await self.track(event)
            await self.evaluate_and_alert(state)
        except CacheError as e:
            log.error(f"[{self.name}] Health state unavailable: {e}")

    async def snapshot(self) -> AlertStats | None:
        if not self.enabled:
            return None
        try:
            state = await self.load_state()
        except CacheError as e:
            log.error(f"[{self.name}] Health state unavailable: {e}")
            return None
        return compute_stats(state.events)
