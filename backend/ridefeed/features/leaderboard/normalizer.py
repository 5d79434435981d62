"""
Leaderboard normalizer.

Maps raw SportFengur rider entries into the stable record layout the
live-graphics tool reads: Nr, Saeti, rider/horse fields, judge scores
E1..E5 with their mean E6, the main score group ("adal") and one group
per gait with its own E1..E6.

Scores are strings: rounded half-up to 2 decimals, trailing zeros
dropped ("8.60" -> "8.6"). Missing or unreadable values become "".
Nothing in here raises on bad input.
"""

import re
import unicodedata
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from ridefeed.shared.constants import JUDGE_COUNT, MAIN_SCORE_GROUP, UNRANKED

TWO_PLACES = Decimal("0.01")

# Letters NFKD does not decompose
_GAIT_LETTERS = str.maketrans({"ð": "d", "þ": "th", "æ": "ae", "ø": "o"})

_YEAR_RE = re.compile(r"(\d{4})")


# =============================================================================
# Scores
# =============================================================================

def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def _format(number: Decimal) -> str:
    text = f"{number.quantize(TWO_PLACES, rounding=ROUND_HALF_UP):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def round_score(value: Any) -> str:
    """
    Round a judge score half-up to 2 decimals.

    Accepts numbers and strings with either decimal separator.

    >>> round_score("8,455")
    '8.46'
    >>> round_score(9.0)
    '9'
    """
    number = _to_decimal(value)
    if number is None:
        return ""
    return _format(number)


def average_score(scores: list[str]) -> str:
    """Mean of the present scores, "" when none are present."""
    present = [d for d in (_to_decimal(s) for s in scores) if d is not None]
    if not present:
        return ""
    return _format(sum(present) / len(present))


def _score_group(by_judge: dict[int, str]) -> dict[str, str]:
    group = {f"E{i + 1}": by_judge.get(i, "") for i in range(JUDGE_COUNT)}
    group["E6"] = average_score(list(group.values()))
    return group


# =============================================================================
# Gaits
# =============================================================================

def sanitize_gait_key(gait: str) -> str:
    """
    Stable key for a gait name.

    "Tölt frjáls hraði" -> "tolt_frjals_hradi"
    """
    text = str(gait).strip().lower().translate(_GAIT_LETTERS)
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    return re.sub(r"\s+", "_", text)


def extract_gait_scores(judges: Any) -> dict[str, dict[str, str]]:
    """
    Build the main score group and one group per gait.

    Judge position decides the E-slot: a gait scored only by judges
    1 and 3 fills E1 and E3. Gait groups without any valid score are
    left out.
    """
    if not isinstance(judges, list):
        judges = []
    judges = judges[:JUDGE_COUNT]

    main: dict[int, str] = {}
    gaits: dict[str, dict[int, str]] = {}
    titles: dict[str, str] = {}

    for index, judge in enumerate(judges):
        if not isinstance(judge, dict):
            continue

        score = round_score(judge.get("domari_adaleinkunn"))
        if score:
            main[index] = score

        breakdown = judge.get("sundurlidun_einkunna")
        if not isinstance(breakdown, list):
            continue

        for item in breakdown:
            if not isinstance(item, dict):
                continue
            gait = item.get("gangtegund")
            gait_score = round_score(item.get("einkunn"))
            if not gait or not gait_score:
                continue
            key = sanitize_gait_key(gait)
            gaits.setdefault(key, {})[index] = gait_score
            titles.setdefault(key, str(gait))

    groups: dict[str, dict[str, str]] = {MAIN_SCORE_GROUP: _score_group(main)}
    for key, by_judge in gaits.items():
        if not by_judge:
            continue
        groups[key] = {"_title": titles[key], **_score_group(by_judge)}
    return groups


# =============================================================================
# Rider fields
# =============================================================================

def calculate_age(birth_id: Any, today: Optional[date] = None) -> str:
    """
    Age from a birth identifier (e.g. "IS2015184512").

    Returns "" unless a plausible 4-digit year (1900..this year) is found.
    """
    if not isinstance(birth_id, str) or not birth_id:
        return ""
    match = _YEAR_RE.search(birth_id)
    if not match:
        return ""
    year = int(match.group(1))
    current_year = (today or date.today()).year
    if year < 1900 or year > current_year:
        return ""
    return str(current_year - year)


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def _first_text(entry: dict, *keys: str) -> str:
    for key in keys:
        value = _text(entry.get(key))
        if value:
            return value
    return ""


def _color_code(entry: dict) -> str:
    number = entry.get("rodun_litur_numer")
    color = _text(entry.get("rodun_litur"))
    if number is not None and color:
        return f"{number} - {color}"
    return color


def rank_value(rank: Any) -> float:
    """Numeric rank for sorting; missing/non-numeric ranks sort last."""
    try:
        value = float(str(rank).strip())
    except (TypeError, ValueError):
        return UNRANKED
    if value != value or value <= 0:
        return UNRANKED
    return value


# =============================================================================
# Records
# =============================================================================

def normalize_entry(entry: dict, today: Optional[date] = None) -> dict[str, Any]:
    """Normalize one raw rider entry."""
    rider = _first_text(entry, "knapi_fullt_nafn", "knapi_fulltnafn", "knapi_nafn")
    horse = _first_text(entry, "hross_fullt_nafn", "hross_fulltnafn", "hross_nafn")
    groups = extract_gait_scores(entry.get("einkunnir_domara"))
    main = groups[MAIN_SCORE_GROUP]

    record: dict[str, Any] = {
        "Nr": _text(entry.get("vallarnumer")),
        "Saeti": _first_text(entry, "saeti", "fmt_saeti"),
        "Holl": _text(entry.get("holl")),
        "Hond": _text(entry.get("hond")),
        "Knapi": rider,
        "LiturRas": _color_code(entry),
        "FelagKnapa": _text(entry.get("adildarfelag_knapa")),
        "Hestur": horse,
        "Litur": _text(entry.get("hross_litur")),
        "Aldur": calculate_age(entry.get("faedingarnumer"), today),
        "FelagEiganda": _text(entry.get("adildarfelag_eiganda")),
        "Lid": _text(entry.get("lid")),
        "NafnBIG": rider.upper(),
    }
    for i in range(1, JUDGE_COUNT + 2):
        record[f"E{i}"] = main[f"E{i}"]
    record["Medaleinkunn"] = round_score(entry.get("keppandi_medaleinkunn"))
    record.update(groups)
    return record


def normalize_leaderboard(entries: Any, today: Optional[date] = None) -> list[dict[str, Any]]:
    """
    Normalize raw entries and order them by rank (Saeti).

    Unranked riders keep their starting-list order after the ranked ones.
    """
    if not isinstance(entries, list):
        return []
    records = [normalize_entry(e, today) for e in entries if isinstance(e, dict)]
    return sorted(records, key=lambda r: rank_value(r["Saeti"]))
