"""CLI entry point.

Provides the main CLI application with commands for:
- serve: Run the API server
- init-db: Create the database tables
- create-user / set-password: Manage portal accounts
- build-assets: Write the front-end bundles
"""

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mapping_portal.exceptions import PortalError
from mapping_portal.logging_config import configure_logging
from mapping_portal.settings import get_settings

app = typer.Typer(
    name="mapping-portal",
    help="Control plane of the geospatial processing platform",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level.upper() if log_level else None)


@app.command()
def serve(
    host: Annotated[
        str | None,
        typer.Option("--host", "-h", help="Host to bind to (default: API_HOST)"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to bind to (default: API_PORT)"),
    ] = None,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Enable auto-reload for development"),
    ] = False,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", help="Number of worker processes"),
    ] = None,
) -> None:
    """Start the portal API server.

    Runs the FastAPI application with uvicorn.
    """
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    workers = workers or settings.api_workers

    console.print(
        Panel(
            f"[bold green]Starting Mapping Portal API[/bold green]\n"
            f"Host: {host}\n"
            f"Port: {port}\n"
            f"Workers: {workers}\n"
            f"Reload: {reload}",
            title="Mapping Portal",
            border_style="green",
        )
    )

    uvicorn.run(
        "mapping_portal.api.main:get_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers if not reload else 1,
        log_level=settings.log_level.lower(),
    )


@app.command("init-db")
def init_db() -> None:
    """Create all tables in the configured database.

    Meant for development databases; production schemas are managed with
    ``alembic upgrade head``.
    """
    asyncio.run(_init_db())
    console.print("[green]Database tables created.[/green]")


async def _init_db() -> None:
    from mapping_portal.storage import Database

    database = Database.from_settings(get_settings())
    try:
        await database.create_all()
    finally:
        await database.dispose()


@app.command("create-user")
def create_user(
    name: Annotated[str, typer.Argument(help="Login name")],
    password: Annotated[
        str,
        typer.Option(prompt=True, hide_input=True, confirmation_prompt=True, help="Password"),
    ],
    display_name: Annotated[
        str | None,
        typer.Option("--display-name", help="Name shown in the client"),
    ] = None,
    ui: Annotated[
        str,
        typer.Option("--ui", help="Client capability profile returned at login"),
    ] = "default",
) -> None:
    """Create a portal account."""
    try:
        user_id = asyncio.run(_create_user(name, password, display_name, ui))
    except PortalError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Created user '{name}' with id {user_id}.[/green]")


async def _create_user(name: str, password: str, display_name: str | None, ui: str) -> int:
    from mapping_portal.services.credentials import CredentialStore
    from mapping_portal.storage import Database

    database = Database.from_settings(get_settings())
    try:
        user = await CredentialStore(database).create_user(
            name, password, display_name=display_name, ui=ui
        )
        return user.id
    finally:
        await database.dispose()


@app.command("set-password")
def set_password(
    name: Annotated[str, typer.Argument(help="Login name")],
    password: Annotated[
        str,
        typer.Option(prompt=True, hide_input=True, confirmation_prompt=True, help="New password"),
    ],
) -> None:
    """Replace the password of an account and end its session."""
    try:
        asyncio.run(_set_password(name, password))
    except PortalError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]Password changed for '{name}'.[/green]")


async def _set_password(name: str, password: str) -> None:
    from mapping_portal.services.credentials import CredentialStore
    from mapping_portal.storage import Database

    database = Database.from_settings(get_settings())
    try:
        await CredentialStore(database).set_password(name, password)
    finally:
        await database.dispose()


@app.command("build-assets")
def build_assets(
    project: Annotated[
        list[str] | None,
        typer.Option("--project", "-p", help="Project to build (repeatable; default: all)"),
    ] = None,
) -> None:
    """Write the CSS/JS bundles and compiled templates of front-end projects."""
    from mapping_portal.assets import AssetAssembler

    assembler = AssetAssembler.from_settings(get_settings())
    projects = project or assembler.projects

    table = Table(title="Built assets", show_header=True)
    table.add_column("Project", style="cyan")
    table.add_column("File")

    for name in projects:
        try:
            written = asyncio.run(assembler.write_bundles(name))
        except PortalError as e:
            console.print(f"[red]{name}: {e}[/red]")
            raise typer.Exit(code=1) from e
        for path in written:
            table.add_row(name, str(path))

    console.print(table)


if __name__ == "__main__":
    app()
