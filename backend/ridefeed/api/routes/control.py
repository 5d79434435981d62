"""
Operator control routes.

Protected by X-API-Key header (CONTROL_API_KEY):
- POST /cache/raslisti/clear - drop all cached starting lists
- POST /cache/raslisti/{class_id}/{competition_id}/clear - drop one
- GET/POST /config/event-filter - only process webhooks for one event
- GET /control/webhooks - recent webhook outcomes
"""

import logging
from typing import Any, Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ridefeed.api.deps import get_services, verify_control_key
from ridefeed.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_control_key)], tags=["Control"])


# =============================================================================
# Schemas
# =============================================================================

class EventFilterRequest(BaseModel):
    eventIdFilter: Optional[Union[int, str]] = None
    eventId: Optional[Union[int, str]] = None


class EventFilterResponse(BaseModel):
    eventIdFilter: Optional[int] = None


class WebhookHistoryResponse(BaseModel):
    total: int
    items: list[dict[str, Any]]


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/cache/raslisti/clear")
async def clear_starting_lists(services: Services = Depends(get_services)):
    removed = services.starting_lists.clear_all()
    return {"status": "cleared", "removed": removed}


@router.post("/cache/raslisti/{class_id}/{competition_id}/clear")
async def clear_starting_list(
    class_id: int,
    competition_id: int,
    services: Services = Depends(get_services),
):
    """Drop one class/competition; the next refresh fetches it again."""
    removed = services.starting_lists.invalidate(class_id, competition_id)
    return {
        "status": "cleared" if removed else "not_cached",
        "classId": class_id,
        "competitionId": competition_id,
    }


@router.get("/config/event-filter", response_model=EventFilterResponse)
async def get_event_filter(services: Services = Depends(get_services)):
    return EventFilterResponse(eventIdFilter=services.ingest.event_id_filter)


@router.post("/config/event-filter", response_model=EventFilterResponse)
async def set_event_filter(
    request: EventFilterRequest,
    services: Services = Depends(get_services),
):
    """Set the filter; null or "" clears it."""
    if "eventIdFilter" in request.model_fields_set:
        value = request.eventIdFilter
    elif "eventId" in request.model_fields_set:
        value = request.eventId
    else:
        return JSONResponse(
            {"error": "Missing eventIdFilter (or eventId) in request body"},
            status_code=400,
        )

    try:
        services.ingest.set_event_id_filter(value)
    except ValueError as e:
        return JSONResponse(
            {"error": "Invalid eventIdFilter", "message": str(e)},
            status_code=400,
        )
    return EventFilterResponse(eventIdFilter=services.ingest.event_id_filter)


@router.get("/control/webhooks", response_model=WebhookHistoryResponse)
async def webhook_history(services: Services = Depends(get_services)):
    items = services.ingest.history.items()
    return JSONResponse(
        {"total": len(items), "items": items},
        headers={"Cache-Control": "no-store"},
    )
