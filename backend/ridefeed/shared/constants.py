"""
Unified constants for competitions, webhooks and score layout.

Single source of truth for the identifiers SportFengur uses and the
column layout the live-graphics tool expects.
"""

from enum import IntEnum


class CompetitionType(IntEnum):
    """
    SportFengur competition ids (keppni_numer).

    Heat variants use other ids; they get their own state slot
    but no named query route.
    """
    PRELIMINARY = 1  # forkeppni
    A_FINAL = 2      # A-úrslit
    B_FINAL = 3      # B-úrslit


# Route segment -> competition id for the query surface
COMPETITION_ROUTES: dict[str, CompetitionType] = {
    "forkeppni": CompetitionType.PRELIMINARY,
    "a": CompetitionType.A_FINAL,
    "b": CompetitionType.B_FINAL,
}


# =============================================================================
# Webhooks
# =============================================================================

EVENT_SCORE_UPDATE = "event_einkunn_saeti"
EVENT_LIST_PUBLISHED = "event_raslisti_birtur"
EVENT_NEXT_HEAT = "event_naesti_sprettur"

# Event name -> required payload fields
WEBHOOK_EVENTS: dict[str, list[str]] = {
    EVENT_SCORE_UPDATE: ["eventId", "classId", "competitionId"],
    "event_mot_skra": ["eventId"],
    "event_keppendalisti_breyta": ["eventId"],
    "event_motadagskra_breytist": ["eventId"],
    EVENT_LIST_PUBLISHED: ["eventId", "classId", "published"],
    EVENT_NEXT_HEAT: ["eventId", "classId", "competitionId"],
    "event_keppnisgreinar": ["eventId"],
}

# These events mean the starting list itself changed
FORCE_REFRESH_EVENTS: frozenset[str] = frozenset({
    EVENT_LIST_PUBLISHED,
    EVENT_NEXT_HEAT,
})

# Canonical field -> accepted spellings, first present wins
PAYLOAD_ALIASES: dict[str, tuple[str, ...]] = {
    "eventId": ("eventId", "eventid", "event_id"),
    "classId": ("classId", "classid", "class_id"),
    "competitionId": ("competitionId", "competitionid", "competition_id"),
    "published": ("published", "published_at", "is_published"),
}

WEBHOOK_SECRET_HEADER = "x-webhook-secret"


# =============================================================================
# Contestant records
# =============================================================================

JUDGE_COUNT = 5
MAIN_SCORE_GROUP = "adal"

BASE_FIELDS: list[str] = [
    "Nr",
    "Saeti",
    "Holl",
    "Hond",
    "Knapi",
    "LiturRas",
    "FelagKnapa",
    "Hestur",
    "Litur",
    "Aldur",
    "FelagEiganda",
    "Lid",
    "NafnBIG",
    "E1",
    "E2",
    "E3",
    "E4",
    "E5",
    "E6",
]

# Keys of a contestant record that are not gait groups
NON_GAIT_KEYS: frozenset[str] = frozenset(
    BASE_FIELDS + ["Medaleinkunn", MAIN_SCORE_GROUP, "timestamp"]
)

SCORE_KEYS: list[str] = [f"E{i}" for i in range(1, JUDGE_COUNT + 2)]

# Gait column order in exports; unknown gaits follow alphabetically
GAIT_PRIORITY: list[str] = [
    "tolt_frjals_hradi",
    "haegt_tolt",
    "tolt_med_slakan_taum",
    "brokk",
    "skeid",
    "flugskeid",
    "stokk",
]

# Query parameters forwarded to /events/search
EVENT_SEARCH_PARAMS: list[str] = [
    "numer",
    "motsheiti",
    "motsnumer",
    "stadsetning",
    "felag_audkenni",
    "adildarfelag_numer",
    "land_kodi",
    "ar",
    "dagsetning_byrjar",
    "innanhusmot",
    "motstegund_numer",
    "stormot",
    "world_ranking",
    "skraning_stada",
]

# Sort key for missing/non-numeric ranks and track numbers
UNRANKED = float("inf")
