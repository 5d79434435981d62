"""
API Router

Combines all route modules. Mounted at the root: SportFengur posts
webhooks to /event_* and the graphics tool reads /forkeppni, /a, /b.
"""

from fastapi import APIRouter

from ridefeed.api.routes import control, leaderboards, sportfengur, webhooks

api_router = APIRouter()

api_router.include_router(webhooks.router, tags=["Webhooks"])
api_router.include_router(control.router)
api_router.include_router(sportfengur.router, tags=["SportFengur"])
# Last: /{event_id}/... patterns
api_router.include_router(leaderboards.router, tags=["Leaderboards"])
