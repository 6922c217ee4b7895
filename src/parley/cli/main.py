"""Parley CLI -- run the server and manage its database.

Thin wrapper using click; configuration comes from ``PARLEY_*``
environment variables (see :class:`parley.server.config.Settings`).
"""

from __future__ import annotations

import asyncio

import click

from parley import __version__
from parley.server.config import Settings


@click.group()
@click.version_option(version=__version__, prog_name="parley")
def cli() -> None:
    """Parley direct-messaging server."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: PARLEY_HOST).")
@click.option("--port", default=None, type=int, help="Bind port (default: PARLEY_PORT).")
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP/WebSocket server with uvicorn."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "parley.server.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command("init-db")
@click.option("--database-url", default=None, help="Override PARLEY_DATABASE_URL.")
def init_db(database_url: str | None) -> None:
    """Create all tables in the configured database."""
    from parley.db.engine import dispose_engine, init_engine
    from parley.db.session import create_tables

    url = database_url or Settings().database_url

    async def _run() -> None:
        try:
            await create_tables(init_engine(url))
        finally:
            await dispose_engine()

    asyncio.run(_run())
    click.echo(f"Tables created in {url}")


if __name__ == "__main__":
    cli()
