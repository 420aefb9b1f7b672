"""
Relaygate - Command Line Interface

Usage:
    $ relaygate --help
    $ relaygate serve --port 3000
    $ relaygate status biz1 --format json
    $ relaygate clear-cache biz1
    $ relaygate config

For detailed help on any command:
    $ relaygate <command> --help
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from rich.panel import Panel
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from relaygate import __version__
from relaygate.cli.output import (
    console,
    print_error,
    print_json,
    print_key_value,
    print_status,
    print_success,
    print_warning,
)
from relaygate.config.settings import settings

app = typer.Typer(
    name="relaygate",
    help="Relaygate - multi-tenant chat gateway",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Relaygate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
) -> None:
    """
    Relaygate - multi-tenant chat gateway

    Manages one chat-protocol session per business and exposes pairing,
    status and message relay over HTTP.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(
        None,
        "--host",
        "-h",
        help="Host to bind to. Defaults to HOST.",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to bind to. Defaults to PORT.",
    ),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development.",
    ),
) -> None:
    """
    Start the gateway API server.
    """
    import uvicorn

    host = host or settings.HOST
    port = port or settings.PORT

    console.print(Panel.fit(
        f"Starting Relaygate on [cyan]http://{host}:{port}[/cyan]\n"
        f"Status store: [cyan]{settings.STATUS_STORE}[/cyan]  "
        f"Client: [cyan]{settings.CLIENT_FACTORY}[/cyan]",
        title="Server",
    ))
    if reload:
        console.print("[yellow]Auto-reload enabled (development mode)[/yellow]")

    # A single worker: the session registry lives in-process.
    uvicorn.run(
        "relaygate.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


@app.command()
def status(
    tenant_id: str = typer.Argument(..., help="Tenant (business) id."),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format: table, json.",
    ),
) -> None:
    """
    Show a tenant's last recorded connection status.
    """
    from relaygate.sessions.manager import TenantStatus
    from relaygate.store import StatusStoreError, build_status_store

    if settings.STATUS_STORE == "memory":
        print_warning(
            "The memory status store is private to the server process",
            details="Set STATUS_STORE=database to inspect a running gateway.",
        )

    async def _fetch():
        store = build_status_store(settings)
        try:
            return await store.get(tenant_id)
        finally:
            await store.close()

    try:
        document = asyncio.run(_fetch())
    except StatusStoreError as e:
        print_error("Could not read status", details=str(e))
        raise typer.Exit(1)

    view = TenantStatus.from_document(document)
    if format == "json":
        data = view.to_dict()
        if view.updated_at is not None:
            data["updatedAt"] = view.updated_at.isoformat()
        print_json(data, highlight=False)
    else:
        print_status(tenant_id, view.status, view.error, view.updated_at)


@app.command("clear-cache")
def clear_cache(
    tenant_id: str = typer.Argument(..., help="Tenant (business) id."),
) -> None:
    """
    Remove a tenant's cached session credentials.

    The next initialization starts a fresh pairing.
    """
    from relaygate.credentials import CredentialCache

    cache = CredentialCache(settings.SESSION_DATA_DIR)
    try:
        existed = asyncio.run(cache.clear(tenant_id))
    except (OSError, ValueError) as e:
        print_error(f"Could not clear credential cache for {tenant_id}", details=str(e))
        raise typer.Exit(1)

    if existed:
        print_success(f"Cleared credential cache for {tenant_id}", details=str(cache.path_for(tenant_id)))
    else:
        print_warning(f"No cached credentials for {tenant_id}")


@app.command("config")
def show_config(
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format: table, json.",
    ),
) -> None:
    """
    Show the effective configuration.
    """
    data = settings.model_dump(mode="json")
    data["DATABASE_URL"] = mask_database_url(settings.DATABASE_URL)

    if format == "json":
        print_json(data, highlight=False)
    else:
        print_key_value(sorted(data.items()), title="Relaygate configuration")


def mask_database_url(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid>"


__all__ = ["app", "__version__"]


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
