"""
Leaderboard module: normalization, state and refresh scheduling.

Usage:
    from ridefeed.features.leaderboard import (
        CompetitionStateStore, RefreshCoordinator, RefreshContext,
    )
"""

from .normalizer import (
    normalize_leaderboard,
    normalize_entry,
    extract_gait_scores,
    sanitize_gait_key,
    round_score,
    average_score,
    calculate_age,
)
from .state import CompetitionStateStore, CompetitionSlot
from .refresh import RefreshScheduler, RefreshCoordinator, RefreshContext, RefreshState
from .export import leaderboard_to_csv, gait_results, sort_by_rank, sort_by_number

__all__ = [
    # Normalizer
    "normalize_leaderboard",
    "normalize_entry",
    "extract_gait_scores",
    "sanitize_gait_key",
    "round_score",
    "average_score",
    "calculate_age",
    # State
    "CompetitionStateStore",
    "CompetitionSlot",
    # Refresh
    "RefreshScheduler",
    "RefreshCoordinator",
    "RefreshContext",
    "RefreshState",
    # Export
    "leaderboard_to_csv",
    "gait_results",
    "sort_by_rank",
    "sort_by_number",
]
