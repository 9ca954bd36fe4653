"""
Shared utilities for CLI commands.

Provides configuration loading, value resolution and consistent error
output for the command implementations.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "voltakit.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


# ============================================================================
# Configuration Management
# ============================================================================


def load_yaml_config(config_file: Path, required: bool = False) -> Dict[str, Any]:
    """
    Load and parse a YAML configuration file.

    Args:
        config_file: Path to YAML configuration file
        required: If True, raise error if file doesn't exist

    Returns:
        Configuration dictionary (empty dict if file doesn't exist and not required)

    Raises:
        FileNotFoundError: If required=True and file doesn't exist
        ValueError: If YAML parsing fails or the document is not a mapping

    Example:
        >>> config = load_yaml_config(Path("voltakit.yaml"))
        >>> config.get("volta", {}).get("version")
    """
    if not config_file.exists():
        if required:
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ValueError(f"Invalid YAML in {config_file}: {e}") from e

    config = config or {}
    if not isinstance(config, dict):
        raise ValueError(f"Invalid configuration in {config_file}: expected a mapping")
    return config


def get_section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """
    Get a top-level mapping from a configuration dictionary.

    Raises:
        ValueError: If the section exists but is not a mapping
    """
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return section


def parse_bool(value: Any) -> bool:
    """
    Interpret a YAML or environment value as a boolean.

    Raises:
        ValueError: If the value is not a recognized boolean spelling
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean value: {value!r}")


def env_value(name: str) -> Optional[str]:
    """Get an environment variable, treating empty values as unset."""
    value = os.environ.get(name)
    return value if value else None


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)


# ============================================================================
# Path Utilities
# ============================================================================


def resolve_project_root(path: Optional[Path] = None) -> Path:
    """
    Resolve project root directory.

    Args:
        path: Optional path (defaults to current directory)

    Returns:
        Resolved absolute path
    """
    if path is None:
        path = Path.cwd()
    return Path(path).resolve()


def resolve_path(value: Any, base: Path) -> Path:
    """
    Resolve a configured path, interpreting relative paths against ``base``.

    ``~`` is expanded first.
    """
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def config_file_path(args) -> Path:
    """Get the configuration file the command should read."""
    if getattr(args, "config", None):
        return Path(args.config)
    return resolve_project_root(args.project_root) / DEFAULT_CONFIG_FILE


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "load_yaml_config",
    "get_section",
    "parse_bool",
    "env_value",
    "print_error",
    "print_warning",
    "resolve_project_root",
    "resolve_path",
    "config_file_path",
]
