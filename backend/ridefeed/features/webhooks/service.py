"""
Webhook ingest.

Decides what an incoming SportFengur webhook should do after it has been
acknowledged: drop it as a duplicate, drop it by the event filter, resolve
a missing competition id, and hand the result to the refresh coordinator.
Every outcome is recorded in a bounded history for the control panel.
"""

import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ridefeed.features.leaderboard import RefreshContext, RefreshCoordinator
from ridefeed.features.sportfengur import SportFengurClient
from ridefeed.shared.constants import (
    FORCE_REFRESH_EVENTS,
    PAYLOAD_ALIASES,
    WEBHOOK_EVENTS,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


# =============================================================================
# Payload helpers
# =============================================================================

def _coerce_id(value: Any) -> Any:
    """Numeric strings become ints; anything else is left alone."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return value


def normalize_payload(payload: Optional[dict]) -> dict:
    """Map accepted field spellings to eventId/classId/competitionId/published."""
    payload = dict(payload or {})
    for field, aliases in PAYLOAD_ALIASES.items():
        value = next((payload[a] for a in aliases if payload.get(a) is not None), None)
        payload[field] = value if field == "published" else _coerce_id(value)
    return payload


def missing_fields(event_name: str, payload: dict) -> list[str]:
    required = WEBHOOK_EVENTS.get(event_name, [])
    return [key for key in required if payload.get(key) in (None, "")]


def dedupe_key(event_name: str, payload: dict) -> str:
    parts = [event_name] + [
        payload.get(k) for k in ("eventId", "classId", "competitionId", "published")
    ]
    return "|".join("" if p is None else str(p) for p in parts)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Dedupe
# =============================================================================

class DedupeCache:
    """Remembers webhook keys for ttl seconds."""

    def __init__(self, ttl: float = 30.0, clock: Clock = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._seen: dict[str, float] = {}

    def prune(self):
        now = self._clock()
        for key in [k for k, ts in self._seen.items() if now - ts > self.ttl]:
            del self._seen[key]

    def check_and_add(self, key: str) -> bool:
        """True if the key was already seen inside the window; records it otherwise."""
        self.prune()
        if key in self._seen:
            return True
        self._seen[key] = self._clock()
        return False

    def __len__(self) -> int:
        return len(self._seen)

    def clear(self):
        self._seen.clear()


# =============================================================================
# Competition resolver
# =============================================================================

class CompetitionResolver:
    """
    Finds the competition id for a class when a webhook omits it.

    Order: the payload itself, then ids learned from earlier webhooks,
    then the event's test list from SportFengur.
    """

    def __init__(self, client: SportFengurClient):
        self.client = client
        self._by_class: dict[Any, Any] = {}

    async def resolve(self, payload: dict) -> Optional[int]:
        event_id = payload.get("eventId")
        class_id = payload.get("classId")
        competition_id = payload.get("competitionId")

        if competition_id is not None:
            if class_id is not None:
                self._by_class[class_id] = competition_id
            return competition_id

        if class_id is None:
            return None
        if class_id in self._by_class:
            return self._by_class[class_id]
        if event_id is None:
            return None

        data = await self.client.get_event_tests(event_id)
        tests = data.get("res") if isinstance(data, dict) else None
        for test in tests if isinstance(tests, list) else []:
            if not isinstance(test, dict):
                continue
            if str(test.get("flokkar_numer")) == str(class_id) and test.get("keppni_numer") is not None:
                found = _coerce_id(test["keppni_numer"])
                self._by_class[class_id] = found
                logger.info(f"Resolved class {class_id} to competition {found}")
                return found

        return None

    def clear(self):
        self._by_class.clear()


# =============================================================================
# History
# =============================================================================

class WebhookHistory:
    """Newest-first ring buffer of webhook outcomes."""

    def __init__(self, limit: int = 200):
        self._items: deque[dict] = deque(maxlen=limit)

    def push(self, status: str, event_name: str, payload: dict, **extra):
        self._items.appendleft({
            "at": _now_iso(),
            "status": status,
            "eventName": event_name,
            "eventId": payload.get("eventId"),
            "classId": payload.get("classId"),
            "competitionId": payload.get("competitionId"),
            **extra,
        })

    def items(self) -> list[dict]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def clear(self):
        self._items.clear()


# =============================================================================
# Ingest
# =============================================================================

class WebhookIngest:
    """
    Post-acknowledgement webhook processing.

    Usage:
        ingest = WebhookIngest(coordinator, resolver)
        await ingest.process("event_einkunn_saeti", payload)
    """

    def __init__(
        self,
        coordinator: RefreshCoordinator,
        resolver: CompetitionResolver,
        dedupe_ttl: float = 30.0,
        event_id_filter: Optional[int] = None,
        history_limit: int = 200,
        clock: Clock = time.monotonic,
    ):
        self.coordinator = coordinator
        self.resolver = resolver
        self.dedupe = DedupeCache(dedupe_ttl, clock=clock)
        self.history = WebhookHistory(history_limit)
        self._event_id_filter = event_id_filter

        self.last_webhook_at: Optional[str] = None
        self.last_processed_at: Optional[str] = None
        self.last_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Event filter
    # -------------------------------------------------------------------------

    @property
    def event_id_filter(self) -> Optional[int]:
        return self._event_id_filter

    def set_event_id_filter(self, value: Any):
        """
        Set or clear (None / "") the single-event filter.

        Raises:
            ValueError: value is not an integer
        """
        if value is None or value == "":
            self._event_id_filter = None
        elif isinstance(value, bool):
            raise ValueError(f"Invalid event id: {value!r}")
        else:
            self._event_id_filter = int(str(value).strip())
        logger.info(f"Event filter set to {self._event_id_filter}")

    def is_allowed(self, payload: dict) -> bool:
        if self._event_id_filter is None:
            return True
        return str(payload.get("eventId")) == str(self._event_id_filter)

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    async def process(self, event_name: str, payload: dict) -> str:
        """
        Handle one acknowledged webhook.

        Returns the recorded outcome: "duplicate", "filtered",
        "processed" or "error". Never raises.
        """
        self.last_webhook_at = _now_iso()

        key = dedupe_key(event_name, payload)
        if self.dedupe.check_and_add(key):
            logger.info(f"Duplicate webhook ignored: {key}")
            self.history.push("duplicate", event_name, payload, key=key)
            return "duplicate"

        started = time.monotonic()
        logger.info(f"Processing webhook {event_name}")

        try:
            if not self.is_allowed(payload):
                logger.info(
                    f"Webhook for event {payload.get('eventId')} filtered "
                    f"(only {self._event_id_filter})"
                )
                self.history.push("filtered", event_name, payload)
                return "filtered"

            competition_id = await self.resolver.resolve(payload)
            event_id = payload.get("eventId")
            class_id = payload.get("classId")

            if event_id and class_id and competition_id:
                self.coordinator.trigger(RefreshContext(
                    event_id=event_id,
                    class_id=class_id,
                    competition_id=competition_id,
                    force_refresh=event_name in FORCE_REFRESH_EVENTS,
                ))
            else:
                logger.info(f"No competition context in {event_name}, nothing scheduled")

        except Exception as e:
            self.last_error = f"{_now_iso()} {event_name} {e}"
            logger.error(f"Webhook {event_name} failed: {e}")
            self.history.push("error", event_name, payload, message=str(e))
            return "error"

        duration_ms = round((time.monotonic() - started) * 1000)
        self.last_processed_at = _now_iso()
        logger.info(f"Webhook {event_name} done in {duration_ms}ms")
        self.history.push("processed", event_name, payload, durationMs=duration_ms)
        return "processed"

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def health(self) -> dict:
        return {
            "lastWebhookAt": self.last_webhook_at,
            "lastWebhookProcessedAt": self.last_processed_at,
            "lastError": self.last_error,
        }

    def reset(self):
        self.dedupe.clear()
        self.resolver.clear()
        self.history.clear()
        self.last_webhook_at = None
        self.last_processed_at = None
        self.last_error = None
