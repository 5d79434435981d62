"""
Command line interface.

Usage:
    ridefeed serve
    ridefeed serve --port 3000 --reload
    ridefeed config
"""

import click
import uvicorn

from ridefeed import __version__
from ridefeed.config import settings


@click.group()
@click.version_option(version=__version__)
def cli():
    """ridefeed - SportFengur webhooks to live graphics."""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
@click.option("--port", default=None, type=int, help="Port (default: PORT or 3000)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the HTTP server."""
    host = host or settings.host
    port = port or settings.port
    click.echo(f"ridefeed {__version__} listening on {host}:{port}")
    uvicorn.run(
        "ridefeed.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command("config")
def show_config():
    """Print the effective configuration (secrets masked)."""
    secret_fields = {"sportfengur_password", "webhook_secret", "control_api_key"}
    for name, value in settings.model_dump().items():
        if name in secret_fields and value:
            value = "***"
        click.echo(f"{name} = {value}")


if __name__ == "__main__":
    cli()
