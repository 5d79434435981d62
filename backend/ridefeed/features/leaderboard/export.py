"""
Leaderboard exports for the live-graphics tool.

- leaderboard_to_csv: one row per rider, base columns, main group and
  every gait group flattened into <gait>E1..<gait>E6 columns
- gait_results: one table per gait with each rider's scores
- sort_by_rank / sort_by_number: the two orders the query routes offer
"""

import csv
import io
from typing import Any

from ridefeed.shared.constants import (
    BASE_FIELDS,
    GAIT_PRIORITY,
    MAIN_SCORE_GROUP,
    NON_GAIT_KEYS,
    SCORE_KEYS,
)
from .normalizer import rank_value


def sort_by_rank(leaderboard: list[dict]) -> list[dict]:
    return sorted(leaderboard, key=lambda r: rank_value(r.get("Saeti")))


def sort_by_number(leaderboard: list[dict]) -> list[dict]:
    """Track number (Nr) order; riders without a number go last."""
    return sorted(leaderboard, key=lambda r: rank_value(r.get("Nr")))


def gait_keys(leaderboard: list[dict]) -> list[str]:
    """Gait groups present in any record, in export order."""
    found = {
        key
        for record in leaderboard
        for key, value in record.items()
        if key not in NON_GAIT_KEYS and isinstance(value, dict)
    }

    def order(key: str):
        if key in GAIT_PRIORITY:
            return (0, GAIT_PRIORITY.index(key), key)
        return (1, 0, key)

    return sorted(found, key=order)


def leaderboard_to_csv(leaderboard: list[dict]) -> str:
    gaits = gait_keys(leaderboard)
    headers = (
        BASE_FIELDS
        + [f"{MAIN_SCORE_GROUP}{k}" for k in SCORE_KEYS]
        + [f"{gait}{k}" for gait in gaits for k in SCORE_KEYS]
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)

    for record in leaderboard:
        row = [record.get(field, "") for field in BASE_FIELDS]
        for group in [MAIN_SCORE_GROUP] + gaits:
            scores = record.get(group) or {}
            row.extend(scores.get(k, "") for k in SCORE_KEYS)
        writer.writerow(row)

    return buffer.getvalue()


def gait_results(leaderboard: list[dict]) -> list[dict[str, Any]]:
    """
    Per-gait result tables.

    [{"gangtegundKey": "tolt_frjals_hradi", "title": "Tölt frjáls hraði",
      "einkunnir": [{"nafn": ..., "saeti": ..., "E1": ..., ..., "E6": ...}]}]
    """
    tables: dict[str, dict[str, Any]] = {}

    for record in leaderboard:
        for key, value in record.items():
            if key in NON_GAIT_KEYS or not isinstance(value, dict):
                continue
            table = tables.setdefault(key, {
                "gangtegundKey": key,
                "title": value.get("_title") or key,
                "einkunnir": [],
            })
            scores = {k: v for k, v in value.items() if k != "_title"}
            table["einkunnir"].append({
                "nafn": record.get("Knapi", ""),
                "saeti": record.get("Saeti", ""),
                **scores,
            })

    return [tables[key] for key in gait_keys(leaderboard) if key in tables]
