"""Character journey command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from storyloom.cli.utils import CLIHandler, to_json
from storyloom.config import get_settings_for_cli
from storyloom.narrative import NarrativeQueries
from storyloom.store import open_store

console = Console()


def journey_command(
    story_id: Annotated[str, typer.Argument(help="Story id")],
    character: Annotated[str, typer.Argument(help="Character name")],
    db_path: Annotated[
        Path | None,
        typer.Option("--db-path", "-d", help="Path to the SQLite database file"),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show the events a character takes part in, in the character's order."""
    handler = CLIHandler(console)

    try:
        settings = get_settings_for_cli(cli_overrides={"database_path": db_path})
        with open_store(settings) as store:
            journey = NarrativeQueries(store).character_journey(story_id, character)
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(to_json(journey))
        return

    if not journey:
        console.print(f"[yellow]No events found for {character}[/yellow]")
        return

    table = Table(title=f"Journey of {character}")
    table.add_column("#", justify="right")
    table.add_column("Event", style="cyan")
    table.add_column("Importance", justify="right")
    table.add_column("Experience")
    for entry in journey:
        table.add_row(
            str(entry["character_sequence_number"]),
            str(entry["title"]),
            str(entry["importance"]),
            str(entry["experience_type"]),
        )
    console.print(table)
