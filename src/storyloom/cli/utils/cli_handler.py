"""Unified CLI handler for standardized error handling and output."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from storyloom.config import get_logger
from storyloom.exceptions import StoryloomError, ValidationError

logger = get_logger(__name__)


def to_json(data: Any) -> str:
    """Serialize command output as indented JSON."""
    return json.dumps(data, default=str, indent=2)


class CLIHandler:
    """Unified handler for CLI commands."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize CLI handler.

        Args:
            console: Rich console for output
        """
        self.console = console or Console()

    def handle_error(
        self, error: Exception, json_output: bool = False, exit_code: int = 1
    ) -> None:
        """Display an error and exit.

        Args:
            error: Exception to handle
            json_output: Whether to output JSON
            exit_code: Exit code to use

        Raises:
            typer.Exit: Always
        """
        message = error.message if isinstance(error, StoryloomError) else str(error)
        logger.error("Command failed", error=message)

        if json_output:
            print(
                to_json(
                    {
                        "success": False,
                        "error": message,
                        "error_type": type(error).__name__,
                    }
                )
            )
        else:
            self.console.print(f"[red]Error:[/red] {message}")
            hint = error.hint if isinstance(error, StoryloomError) else None
            if hint:
                self.console.print(f"[dim]Hint: {hint}[/dim]")

        raise typer.Exit(exit_code) from error

    def read_json(self, path: Path) -> Any:
        """Load a JSON input file.

        Raises:
            ValidationError: If the file is missing or not valid JSON.
        """
        if not path.is_file():
            raise ValidationError(
                message=f"Input file not found: {path}",
                hint="Pass the path of a JSON file",
            )
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError(
                message=f"Invalid JSON in {path}: {e.msg}",
                details={"line": e.lineno, "column": e.colno},
            ) from e
