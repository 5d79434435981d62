"""
SportFengur Webhook Routes

One POST endpoint per SportFengur event (see WEBHOOK_EVENTS):
- 401 on a bad/missing secret (when enforcement is on)
- 400 listing missing required fields
- 200 "received" right away; processing continues in the background

Bodies may be JSON or form-encoded.
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse

from ridefeed.api.deps import get_services, verify_webhook_secret
from ridefeed.features.webhooks import missing_fields, normalize_payload
from ridefeed.services import Services
from ridefeed.shared.constants import WEBHOOK_EVENTS

logger = logging.getLogger(__name__)

router = APIRouter()

RECEIVED = "received"


FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_payload(request: Request) -> dict:
    """JSON or form body as a dict; anything unreadable becomes {}."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return {}
    return data if isinstance(data, dict) else {}


def _make_handler(event_name: str):
    async def handle_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        services: Services = Depends(get_services),
    ):
        payload = normalize_payload(await _read_payload(request))

        missing = missing_fields(event_name, payload)
        if missing:
            logger.warning(f"Webhook {event_name} missing fields: {missing}")
            return PlainTextResponse(
                f"Missing required fields: {', '.join(missing)}",
                status_code=400,
            )

        logger.info(
            f"Webhook {event_name} received: event {payload.get('eventId')}, "
            f"class {payload.get('classId')}, competition {payload.get('competitionId')}"
        )
        background_tasks.add_task(services.ingest.process, event_name, payload)
        return PlainTextResponse(RECEIVED)

    handle_webhook.__name__ = f"webhook_{event_name}"
    return handle_webhook


for _event_name in WEBHOOK_EVENTS:
    router.add_api_route(
        f"/{_event_name}",
        _make_handler(_event_name),
        methods=["POST"],
        dependencies=[Depends(verify_webhook_secret)],
        response_class=PlainTextResponse,
        summary=f"SportFengur webhook: {_event_name}",
    )


@router.post("/webhooks/test", response_class=PlainTextResponse)
async def test_webhook(request: Request):
    """Log whatever was sent; used to check connectivity from SportFengur."""
    payload = await _read_payload(request)
    logger.info(f"Test webhook received: {sorted(payload)}")
    return PlainTextResponse(RECEIVED)
