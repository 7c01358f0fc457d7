"""Configuration template generator for Storyloom."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from storyloom.config.settings import StoryloomSettings

# (section, setting names) in the order they appear in the template
_SECTIONS: list[tuple[str, list[str]]] = [
    (
        "Database Configuration",
        [
            "database_path",
            "database_timeout",
            "database_foreign_keys",
            "database_journal_mode",
            "database_synchronous",
            "database_cache_size",
            "database_temp_store",
            "database_pool_min",
            "database_pool_max",
        ],
    ),
    ("Application Settings", ["app_name", "mcp_server_name", "debug"]),
    ("Logging Configuration", ["log_level", "log_format", "log_file"]),
]

_TEMPLATE_DEFAULTS: dict[str, Any] = {
    "database_path": "storyloom.db",
}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str | Path):
        return f'"{value}"'
    return str(value)


def generate_config_template() -> str:
    """Generate a YAML configuration template with comments.

    Every setting is listed with its description and default. Optional
    settings without a default are emitted commented out.

    Returns:
        The YAML configuration template.
    """
    fields = StoryloomSettings.model_fields
    lines = [
        "# Storyloom Configuration File",
        "# Settings can be overridden by environment variables "
        "prefixed with STORYLOOM_",
        "# For example: STORYLOOM_DATABASE_PATH=/path/to/stories.db",
    ]

    for title, names in _SECTIONS:
        lines.append("")
        lines.append(f"# {title}")
        for name in names:
            field = fields[name]
            default = _TEMPLATE_DEFAULTS.get(name, field.default)
            lines.append(f"# {field.description} (env: STORYLOOM_{name.upper()})")
            if default is None:
                lines.append(f"# {name}: /path/to/value")
            else:
                lines.append(f"{name}: {_format_value(default)}")

    return "\n".join(lines) + "\n"


def write_config_template(output_path: Path, force: bool = False) -> Path:
    """Write the configuration template to a file.

    Args:
        output_path: Path where the config file should be written.
        force: If True, overwrite existing file.

    Returns:
        The path to the written configuration file.

    Raises:
        FileExistsError: If the file exists and force is False.
    """
    output_path = output_path.resolve()

    if output_path.exists() and not force:
        raise FileExistsError(f"Configuration file already exists: {output_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(generate_config_template(), encoding="utf-8")

    return output_path


def get_default_config_path() -> Path:
    """Get the default configuration file path.

    Uses ~/.config/storyloom/config.yaml, falling back to ./storyloom.yaml
    when the home directory is not usable.
    """
    try:
        config_dir = Path.home().resolve() / ".config" / "storyloom"
        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir / "config.yaml"
    except (OSError, RuntimeError):
        return Path.cwd() / "storyloom.yaml"
