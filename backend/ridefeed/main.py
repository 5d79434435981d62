"""
ridefeed API

FastAPI application: SportFengur webhooks in, live-graphics leaderboards out.
"""

from contextlib import asynccontextmanager
import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

from ridefeed import __version__
from ridefeed.config import Settings, settings as default_settings
from ridefeed.api.router import api_router
from ridefeed.services import Services, build_services


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, default_settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting ridefeed...")
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(app.state.settings)
    services: Services = app.state.services

    filter_id = services.ingest.event_id_filter
    logger.info(
        f"SportFengur: {services.settings.sportfengur_base_url} "
        f"(locale {services.settings.sportfengur_locale}), "
        f"event filter: {filter_id if filter_id is not None else 'off'}"
    )

    yield

    # Shutdown
    await services.aclose()
    logger.info("Shutting down...")


# === App Creation ===
def create_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """Build the app; pass services to skip building them from settings."""
    settings = settings or (services.settings if services else default_settings)

    app = FastAPI(
        title="ridefeed",
        description="SportFengur webhook receiver and live-graphics leaderboard feed",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.services = services

    # === Health Check ===
    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        current: Optional[Services] = request.app.state.services
        body = {"status": "ok", "version": __version__}
        if current is not None:
            body.update(current.ingest.health())
            body["refresh"] = current.coordinator.status()
        return body

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse("/docs" if settings.debug else "/health")

    # === Routes ===
    app.include_router(api_router)

    return app


app = create_app()
