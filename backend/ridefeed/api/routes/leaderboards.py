"""
Leaderboard Routes (live-graphics feed)

Read-only views of the competition state:
- /current, /current/{event_id} - most recently refreshed competition
- /forkeppni, /a, /b - by track number; /sorted variants by rank
- /{event_id}/forkeppni|a|b[/sorted] - 404 when the slot holds another event
- /{event_id}/results/a|b - per-gait result tables
- /leaderboard.csv - CSV export

Nothing here calls SportFengur.
"""

import logging
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from ridefeed.api.deps import get_services
from ridefeed.features.leaderboard import (
    CompetitionSlot,
    gait_results,
    leaderboard_to_csv,
    sort_by_number,
    sort_by_rank,
)
from ridefeed.services import Services
from ridefeed.shared.constants import COMPETITION_ROUTES, CompetitionType

logger = logging.getLogger(__name__)

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}

COMPETITION_LABELS = {
    CompetitionType.PRELIMINARY: "Forkeppni",
    CompetitionType.A_FINAL: "A-úrslit",
    CompetitionType.B_FINAL: "B-úrslit",
}


def _json(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(data, status_code=status_code, headers=NO_STORE)


def _parse_event_id(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _event_mismatch(slot: CompetitionSlot, event_id: int, label: str) -> Optional[JSONResponse]:
    """404 payload when the slot holds data for another event."""
    if slot.event_id is not None and slot.event_id != event_id:
        what = f"No {label} data" if label else "No data"
        return _json(
            {
                "error": f"{what} available for this event",
                "requestedEventId": event_id,
                "currentEventId": slot.event_id,
            },
            status_code=404,
        )
    return None


# =============================================================================
# Current competition
# =============================================================================

@router.get("/current")
async def current(services: Services = Depends(get_services)):
    return _json(services.state.read())


@router.get("/current/{event_id}")
async def current_for_event(event_id: str, services: Services = Depends(get_services)):
    requested = _parse_event_id(event_id)
    if requested is None:
        return _json({"error": "Invalid event ID"}, status_code=400)

    slot = services.state.snapshot()
    mismatch = _event_mismatch(slot, requested, "")
    return mismatch or _json(list(slot.leaderboard))


@router.get("/leaderboard.csv")
async def leaderboard_csv(
    competition_id: Optional[int] = Query(default=None, alias="competitionId"),
    services: Services = Depends(get_services),
):
    leaderboard = services.state.read(competition_id)
    return Response(
        content=leaderboard_to_csv(leaderboard),
        media_type="text/csv",
        headers=NO_STORE,
    )


# =============================================================================
# Per competition
# =============================================================================

def _list_view(competition: CompetitionType, order: Callable[[list], list]):
    async def view(services: Services = Depends(get_services)):
        leaderboard = order(services.state.read(int(competition)))
        return _json(leaderboard)
    return view


def _event_view(competition: CompetitionType, order: Callable[[list], list]):
    label = COMPETITION_LABELS[competition]

    async def view(event_id: str, services: Services = Depends(get_services)):
        requested = _parse_event_id(event_id)
        if requested is None:
            return _json({"error": "Invalid event ID"}, status_code=400)

        slot = services.state.snapshot(int(competition))
        mismatch = _event_mismatch(slot, requested, label)
        if mismatch:
            return mismatch
        return _json(order(list(slot.leaderboard)))
    return view


def _results_view(competition: CompetitionType):
    label = COMPETITION_LABELS[competition]

    async def view(event_id: str, services: Services = Depends(get_services)):
        requested = _parse_event_id(event_id)
        if requested is None:
            return _json({"error": "Invalid event ID"}, status_code=400)

        slot = services.state.snapshot(int(competition))
        mismatch = _event_mismatch(slot, requested, label)
        if mismatch:
            return mismatch
        return _json(gait_results(list(slot.leaderboard)))
    return view


for _segment, _competition in COMPETITION_ROUTES.items():
    router.add_api_route(
        f"/{_segment}", _list_view(_competition, sort_by_number),
        methods=["GET"], name=f"{_segment}_by_number",
    )
    router.add_api_route(
        f"/{_segment}/sorted", _list_view(_competition, sort_by_rank),
        methods=["GET"], name=f"{_segment}_by_rank",
    )

for _segment, _competition in COMPETITION_ROUTES.items():
    if _competition != CompetitionType.PRELIMINARY:
        router.add_api_route(
            f"/{{event_id}}/results/{_segment}", _results_view(_competition),
            methods=["GET"], name=f"{_segment}_gait_results",
        )
    router.add_api_route(
        f"/{{event_id}}/{_segment}", _event_view(_competition, sort_by_number),
        methods=["GET"], name=f"{_segment}_for_event_by_number",
    )
    router.add_api_route(
        f"/{{event_id}}/{_segment}/sorted", _event_view(_competition, sort_by_rank),
        methods=["GET"], name=f"{_segment}_for_event_by_rank",
    )
