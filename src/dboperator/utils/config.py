"""Configuration management for dboperator.

Loads database definitions from dboperator.toml in the current working
directory:

    [dboperator]
    default_timeout = 30

    [dboperator.databases.main]
    db_type = "postgres"
    host = "localhost"
    database = "app"
    user = "app"
    password = "${APP_DB_PASSWORD}"
"""

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError
from rich.console import Console

from dboperator.dbx.config import DBConfig
from dboperator.errors import InvalidConfigError, NotFoundError

console = Console(stderr=True)

CONFIG_FILE_NAME = "dboperator.toml"


class ConfigSettings(BaseModel):
    """Configuration settings for dboperator.

    ``databases`` maps a logical name to the raw DBConfig fields for it;
    they are validated when a database is requested.
    """

    default_timeout: Optional[float] = None
    databases: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def database(self, name: str) -> DBConfig:
        """Build the DBConfig for a logical database name.

        Args:
            name: Key under ``[dboperator.databases]``.

        Returns:
            The validated configuration with ``db_name`` set to ``name``.

        Raises:
            NotFoundError: If no database of that name is defined.
            InvalidConfigError: If the definition is invalid.
        """
        if name not in self.databases:
            available = ", ".join(sorted(self.databases))
            raise NotFoundError(
                f"Database '{name}' is not defined in {CONFIG_FILE_NAME}. "
                f"Defined databases: {available or 'none'}"
            )
        try:
            return DBConfig(**{**self.databases[name], "db_name": name})
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid config for database '{name}': {e}"
            ) from e


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    return value


def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find dboperator.toml in the current working directory.

    Args:
        start_path: Directory to look in. Defaults to the current directory.

    Returns:
        Path to config file if found, None otherwise.
    """
    if start_path is None:
        start_path = Path.cwd()

    config_path = start_path / CONFIG_FILE_NAME

    if config_path.exists() and config_path.is_file():
        return config_path

    return None


def load_config(config_path: Optional[Path] = None) -> ConfigSettings:
    """Load configuration from dboperator.toml.

    Priority order:
    1. Explicit config_path parameter
    2. dboperator.toml in current working directory
    3. Empty ConfigSettings

    Environment variable references (``$VAR`` or ``${VAR}``) in string
    values are expanded.

    Error Handling:
        - Missing file: Returns empty ConfigSettings (silent)
        - Malformed TOML: Warns user and returns empty ConfigSettings
        - Invalid values: Warns user and returns empty ConfigSettings
    """
    if config_path is None:
        config_path = find_config_file()

    if config_path is None:
        return ConfigSettings()

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        section = _expand_env(toml_data.get("dboperator", {}))

        try:
            return ConfigSettings(**section)
        except ValidationError as e:
            console.print(
                f"[yellow]Warning:[/yellow] Invalid configuration in "
                f"{config_path}: {e}",
            )
            console.print("[yellow]Using default settings[/yellow]")
            return ConfigSettings()

    except tomllib.TOMLDecodeError as e:
        console.print(
            f"[yellow]Warning:[/yellow] Failed to parse {config_path}: {e}",
        )
        console.print("[yellow]Using default settings[/yellow]")
        return ConfigSettings()

    except OSError as e:
        console.print(
            f"[yellow]Warning:[/yellow] Could not read {config_path}: {e}",
        )
        console.print("[yellow]Using default settings[/yellow]")
        return ConfigSettings()
