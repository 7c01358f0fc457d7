"""Custom exception hierarchy for Storyloom with helpful error messages."""

from __future__ import annotations

from typing import Any


class StoryloomError(Exception):
    """Base exception with helpful formatting for all Storyloom errors.

    Provides structured error messages with hints and details to help users
    understand and fix problems.
    """

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception with structured error information.

        Args:
            message: Primary error message describing what went wrong
            hint: Optional hint suggesting how to fix the problem
            details: Optional dictionary with additional debugging information
        """
        self.message = message
        self.hint = hint
        self.details = details
        super().__init__(self.format_error())

    def format_error(self) -> str:
        """Format the error message with hint and details.

        Returns:
            Formatted error string with all available information
        """
        output = f"Error: {self.message}"
        if self.hint:
            output += f"\nHint: {self.hint}"
        if self.details:
            details_str = "\n".join(
                f"  {key}: {value}" for key, value in self.details.items()
            )
            output += f"\nDetails:\n{details_str}"
        return output


class DatabaseError(StoryloomError):
    """Database-related errors including connection and query issues."""

    pass


class ConfigurationError(StoryloomError):
    """Configuration errors including invalid settings and missing config files."""

    pass


class ValidationError(StoryloomError):
    """Input validation errors with details about what was expected."""

    pass


def check_database_path(db_path: Any) -> None:
    """Check that a database file exists and raise a helpful error if not.

    Args:
        db_path: Path to check for database

    Raises:
        DatabaseError: With hints about database initialization
    """
    from pathlib import Path

    if not db_path or not Path(db_path).exists():
        hints = []
        if Path("storyloom.db").exists():
            hints.append("Found storyloom.db in current dir. Use that?")
        else:
            hints.append("Run 'storyloom init' to create a new database")
            hints.append("Or set STORYLOOM_DATABASE_PATH environment variable")

        raise DatabaseError(
            message=f"Database not found at {db_path}",
            hint=" ".join(hints),
            details={
                "searched_path": str(db_path) if db_path else "None",
                "current_dir": str(Path.cwd()),
            },
        )


def check_config_keys(config: dict[str, Any]) -> None:
    """Check for common configuration mistakes.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ConfigurationError: With hints about correct configuration keys
    """
    wrong_keys = {
        "db_path": "database_path",
        "database": "database_path",
        "log": "log_level",
    }

    for wrong, correct in wrong_keys.items():
        if wrong in config:
            raise ConfigurationError(
                message=f"Invalid configuration key '{wrong}'",
                hint=f"Use '{correct}' instead of '{wrong}'",
                details={
                    "found_keys": list(config.keys()),
                    "invalid_key": wrong,
                    "correct_key": correct,
                },
            )
