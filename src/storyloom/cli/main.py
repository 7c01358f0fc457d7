"""Main CLI entry point."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from storyloom import __version__
from storyloom.cli.commands import (
    import_command,
    import_entities_command,
    init_command,
    journey_command,
    mcp_command,
)
from storyloom.cli.utils import CLIHandler, to_json
from storyloom.config import (
    clear_settings_cache,
    configure_logging,
    get_logger,
    get_settings,
    get_settings_for_cli,
    set_settings,
)
from storyloom.narrative import NarrativeQueries
from storyloom.store import open_store

logger = get_logger(__name__)
console = Console()

app = typer.Typer(
    name="storyloom",
    help="Import and reconcile analyzed story content",
    pretty_exceptions_enable=False,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(name="init")(init_command)
app.command(name="import")(import_command)
app.command(name="import-entities")(import_entities_command)
app.command(name="journey")(journey_command)
app.command(name="mcp")(mcp_command)


@app.command()
def status(
    story_id: Annotated[
        str | None,
        typer.Option("--story", "-s", help="Also summarize this story"),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show Storyloom status and configuration."""
    handler = CLIHandler(console)

    try:
        settings = get_settings()
        status_info: dict[str, object] = {
            "version": __version__,
            "database": str(settings.database_path),
            "database_exists": settings.database_path.exists(),
        }

        if settings.database_path.exists():
            with open_store(settings) as store:
                status_info["stories"] = len(store.select("stories"))
                if story_id:
                    status_info["story"] = NarrativeQueries(store).story_summary(
                        story_id
                    )
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(to_json(status_info))
        return

    console.print("[bold cyan]Storyloom Status[/bold cyan]\n")
    for key, value in status_info.items():
        formatted_key = key.replace("_", " ").title()
        console.print(f"  {formatted_key}: {value}")


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show Storyloom version."""
    version_info = {
        "name": "Storyloom",
        "version": __version__,
        "description": "Import and reconcile analyzed story content",
    }

    if json_output:
        print(to_json(version_info))
    else:
        console.print(f"Storyloom v{version_info['version']}")


@app.callback()
def main_callback(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            envvar="STORYLOOM_CONFIG",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging (INFO level)"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging", envvar="STORYLOOM_DEBUG"),
    ] = False,
) -> None:
    """Configure global options."""
    if debug:
        os.environ["STORYLOOM_LOG_LEVEL"] = "DEBUG"
        os.environ["STORYLOOM_DEBUG"] = "true"
    elif verbose:
        os.environ["STORYLOOM_LOG_LEVEL"] = "INFO"

    if config:
        try:
            set_settings(get_settings_for_cli(config_file=config))
        except Exception as e:
            console.print(f"[red]Error:[/red] Failed to load configuration: {e}")
            raise typer.Exit(1) from e
    elif debug or verbose:
        clear_settings_cache()

    if debug:
        configure_logging(get_settings())
        logger.debug("Debug mode enabled")
    elif verbose:
        configure_logging(get_settings())
        logger.info("Verbose mode enabled")


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
