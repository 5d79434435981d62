"""
Webhook module.

Components:
- WebhookIngest: dedupe, event filter, competition resolution, refresh trigger
- CompetitionResolver: classId -> competitionId lookup
- DedupeCache / WebhookHistory: short-lived bookkeeping
"""

from .service import (
    WebhookIngest,
    CompetitionResolver,
    DedupeCache,
    WebhookHistory,
    normalize_payload,
    missing_fields,
    dedupe_key,
)

__all__ = [
    "WebhookIngest",
    "CompetitionResolver",
    "DedupeCache",
    "WebhookHistory",
    "normalize_payload",
    "missing_fields",
    "dedupe_key",
]
