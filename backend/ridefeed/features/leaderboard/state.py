"""
Competition state store.

Holds the latest normalized leaderboard per competition id together with
the event/class that produced it. Each slot is one immutable object that
is replaced wholesale, so a reader always gets a leaderboard and its
identifiers from the same refresh.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from ridefeed.shared.constants import CompetitionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompetitionSlot:
    """One refresh result for one competition id."""

    competition_id: Optional[int] = None
    event_id: Optional[int] = None
    class_id: Optional[int] = None
    leaderboard: tuple = field(default_factory=tuple)
    updated_at: Optional[datetime] = None

    def metadata(self) -> dict[str, Any]:
        return {
            "eventId": self.event_id,
            "classId": self.class_id,
            "competitionId": self.competition_id,
        }


EMPTY_SLOT = CompetitionSlot()


class CompetitionStateStore:
    """
    In-memory state, written only by the refresh scheduler.

    Usage:
        store = CompetitionStateStore()
        store.update(2, leaderboard, event_id=999, class_id=789)
        slot = store.snapshot(2)
        slot.leaderboard, slot.event_id
    """

    def __init__(self):
        self._slots: dict[int, CompetitionSlot] = {}
        self._current: Optional[int] = None
        self.reset()

    def reset(self):
        """Back to the never-populated state."""
        self._slots = {int(c): CompetitionSlot(competition_id=int(c)) for c in CompetitionType}
        self._current = None

    def update(self, competition_id: int, leaderboard: list, event_id, class_id):
        """Replace a slot in one assignment."""
        slot = CompetitionSlot(
            competition_id=competition_id,
            event_id=event_id,
            class_id=class_id,
            leaderboard=tuple(leaderboard),
            updated_at=datetime.now(timezone.utc),
        )
        self._slots[competition_id] = slot
        self._current = competition_id
        logger.debug(
            f"State slot {competition_id} updated: event {event_id}, "
            f"class {class_id}, {len(slot.leaderboard)} riders"
        )

    def snapshot(self, competition_id: Optional[int] = None) -> CompetitionSlot:
        """
        Current slot, or the most recently updated one if no id is given.

        Never-populated slots come back empty with null identifiers.
        """
        if competition_id is None:
            competition_id = self._current
        if competition_id is None:
            return EMPTY_SLOT
        return self._slots.get(competition_id, CompetitionSlot(competition_id=competition_id))

    def read(self, competition_id: Optional[int] = None) -> list[dict]:
        return list(self.snapshot(competition_id).leaderboard)

    def read_metadata(self, competition_id: Optional[int] = None) -> dict[str, Any]:
        return self.snapshot(competition_id).metadata()

    @property
    def current_competition_id(self) -> Optional[int]:
        return self._current
