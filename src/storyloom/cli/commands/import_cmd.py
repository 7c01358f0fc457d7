"""Import commands for analyzed story bundles and untyped entity lists."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from storyloom.cli.utils import CLIHandler, to_json
from storyloom.config import get_logger, get_settings_for_cli
from storyloom.exceptions import ValidationError
from storyloom.importer import import_analyzed_story, import_entities
from storyloom.store import open_store

logger = get_logger(__name__)
console = Console()

DbPathOption = Annotated[
    Path | None,
    typer.Option("--db-path", "-d", help="Path to the SQLite database file"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def _counts_table(title: str, counts: dict[str, int]) -> Table:
    table = Table(title=title)
    table.add_column("Type", style="cyan")
    table.add_column("Count", justify="right")
    for key, count in counts.items():
        if count:
            table.add_row(key.replace("_", " "), str(count))
    return table


def import_command(
    bundle_file: Annotated[
        Path, typer.Argument(help="JSON file holding the analyzed story bundle")
    ],
    db_path: DbPathOption = None,
    json_output: JsonOption = False,
) -> None:
    """Import an analyzed story bundle.

    Entities are matched against the story's existing rows by name or title,
    so importing the same bundle twice does not create duplicates.
    """
    handler = CLIHandler(console)

    try:
        data = handler.read_json(bundle_file)
        if not isinstance(data, dict):
            raise ValidationError(
                message=f"{bundle_file} must hold a JSON object",
                hint="Group entities under keys such as 'story' and 'characters'",
            )
        settings = get_settings_for_cli(cli_overrides={"database_path": db_path})
        with open_store(settings) as store:
            result = import_analyzed_story(store, data)
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(to_json(result.to_dict()))
    else:
        console.print(_counts_table("Imported", result.counts))
        if result.success:
            console.print("[green]✓[/green] Story imported")
        else:
            console.print(f"[red]Error:[/red] {result.error}")

    if not result.success:
        raise typer.Exit(1)


def import_entities_command(
    records_file: Annotated[
        Path, typer.Argument(help="JSON file holding a list of entity records")
    ],
    story_id: Annotated[
        str | None,
        typer.Option("--story-id", help="Story to attach records to"),
    ] = None,
    story_world_id: Annotated[
        str | None,
        typer.Option("--story-world-id", help="Story world to attach records to"),
    ] = None,
    db_path: DbPathOption = None,
    json_output: JsonOption = False,
) -> None:
    """Import untyped entity records, inferring each record's type."""
    handler = CLIHandler(console)

    try:
        records: Any = handler.read_json(records_file)
        if isinstance(records, dict):
            records = [records]
        if not isinstance(records, list):
            raise ValidationError(
                message=f"{records_file} must hold a JSON array of records"
            )
        settings = get_settings_for_cli(cli_overrides={"database_path": db_path})
        with open_store(settings) as store:
            counts = import_entities(store, records, story_id, story_world_id)
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(to_json({"success": True, "counts": counts}))
        return

    console.print(_counts_table("Imported", counts))
    if counts["unknown"]:
        console.print(
            f"[yellow]{counts['unknown']} record(s) of unknown type skipped[/yellow]"
        )
