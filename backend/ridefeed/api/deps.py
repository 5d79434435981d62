"""
Shared route dependencies: service lookup and header checks.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from ridefeed.services import Services
from ridefeed.shared.constants import WEBHOOK_SECRET_HEADER


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return services


async def verify_webhook_secret(
    services: Services = Depends(get_services),
    x_webhook_secret: Optional[str] = Header(default=None, alias=WEBHOOK_SECRET_HEADER),
) -> None:
    """Shared-secret check, only when enforcement is switched on."""
    settings = services.settings
    if not settings.webhook_secret_required:
        return
    if not settings.webhook_secret or not x_webhook_secret or not secrets.compare_digest(
        x_webhook_secret, settings.webhook_secret
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")


async def verify_control_key(
    services: Services = Depends(get_services),
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
) -> str:
    """Verify the operator API key."""
    expected = services.settings.control_api_key
    if not expected:
        raise HTTPException(status_code=503, detail="Control API not configured")
    if not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return x_api_key
