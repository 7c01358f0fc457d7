"""Initialize database command."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from storyloom.config import get_settings_for_cli
from storyloom.config.template import get_default_config_path, write_config_template
from storyloom.database import DatabaseInitializer

console = Console()


def init_command(
    db_path: Annotated[
        Path | None,
        typer.Option(
            "--db-path",
            "-d",
            help="Path to the SQLite database file",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Force initialization, overwriting existing database",
        ),
    ] = False,
    generate_config: Annotated[
        bool,
        typer.Option(
            "--generate-config",
            "-g",
            help="Generate a template configuration file with all available settings",
        ),
    ] = False,
    config_output: Annotated[
        Path | None,
        typer.Option(
            "--config-output",
            "-o",
            help=(
                "Output path for generated config "
                "(default: ~/.config/storyloom/config.yaml or ./storyloom.yaml)"
            ),
        ),
    ] = None,
) -> None:
    """Initialize the Storyloom SQLite database.

    This command creates a new SQLite database with the Storyloom schema.
    If the database already exists, it will fail unless --force is specified.

    Can also generate a template configuration file with --generate-config.
    """
    if generate_config:
        try:
            output_path = config_output or get_default_config_path()
            written_path = write_config_template(output_path, force=force)
            console.print(
                f"[green]✓[/green] Configuration template generated at {written_path}"
            )
            console.print(
                "[dim]Edit this file to customize your Storyloom settings.[/dim]"
            )
        except FileExistsError as e:
            console.print(f"[red]Error:[/red] {e}", style="bold")
            raise typer.Exit(1) from e

        # Only the config was asked for
        if db_path is None:
            raise typer.Exit(0)

    settings = get_settings_for_cli(cli_overrides={"database_path": db_path})
    initializer = DatabaseInitializer()

    try:
        resolved_path = settings.database_path
        if (
            resolved_path.exists()
            and force
            and not typer.confirm(f"Overwrite existing database at {resolved_path}?")
        ):
            console.print("[yellow]Initialization cancelled.[/yellow]")
            raise typer.Exit(0)

        console.print("[green]Initializing database...[/green]")
        initialized = initializer.initialize_database(force=force, settings=settings)
        console.print(
            f"[green]✓[/green] Database initialized successfully at {initialized}"
        )

    except (typer.Exit, typer.Abort):
        raise

    except FileExistsError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold")
        raise typer.Exit(1) from e

    except Exception as e:
        console.print(
            f"[red]Error:[/red] Failed to initialize database: {e}",
            style="bold",
        )
        raise typer.Exit(1) from e
