"""
SportFengur pass-through routes.

- /event/{event_id}/participants
- /event/{event_id}/tests
- /events/search (whitelisted query parameters only)

Responses go through the shared client, so they share its rate limit,
retries and stale fallback.
"""

import logging
from typing import Any, Awaitable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ridefeed.api.deps import get_services
from ridefeed.features.sportfengur import SportFengurAuthError, SportFengurHTTPError
from ridefeed.services import Services
from ridefeed.shared.constants import EVENT_SEARCH_PARAMS

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC_CACHE = {"Cache-Control": "public, max-age=300"}


async def _relay(call: Awaitable[Any], what: str) -> JSONResponse:
    try:
        data = await call
    except SportFengurAuthError as e:
        logger.error(f"Failed to fetch {what}: {e}")
        return JSONResponse(
            {"error": f"Failed to fetch {what}", "message": str(e)}, status_code=503
        )
    except SportFengurHTTPError as e:
        logger.error(f"Failed to fetch {what}: {e}")
        status = e.status if e.status is not None and 400 <= e.status < 500 else 502
        return JSONResponse(
            {"error": f"Failed to fetch {what}", "message": str(e)}, status_code=status
        )
    return JSONResponse(data, headers=PUBLIC_CACHE)


def _invalid_event() -> JSONResponse:
    return JSONResponse({"error": "Invalid event ID"}, status_code=400)


@router.get("/event/{event_id}/participants")
async def event_participants(event_id: str, services: Services = Depends(get_services)):
    if not event_id.isdigit():
        return _invalid_event()
    return await _relay(services.client.get_participants(int(event_id)), "participants")


@router.get("/event/{event_id}/tests")
async def event_tests(event_id: str, services: Services = Depends(get_services)):
    if not event_id.isdigit():
        return _invalid_event()
    return await _relay(services.client.get_event_tests(int(event_id)), "event tests")


@router.get("/events/search")
async def search_events(request: Request, services: Services = Depends(get_services)):
    params = {
        name: request.query_params[name]
        for name in EVENT_SEARCH_PARAMS
        if name in request.query_params
    }
    return await _relay(services.client.search_events(params), "events")
