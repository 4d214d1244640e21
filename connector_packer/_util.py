"""Utility functions for Connector Packer."""

import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml


YAML_SUFFIXES = {".yaml", ".yml"}


def initialize_logging(debug: bool = False) -> None:
    """Initialize logging configuration for the CLI and MCP server."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def filter_config_secrets(config: dict[str, Any]) -> dict[str, Any]:
    """Filter sensitive information from configuration for logging.

    Args:
        config: Configuration dictionary that may contain secrets

    Returns:
        Configuration dictionary with sensitive values masked
    """
    filtered = config.copy()
    sensitive_keys = {
        "password",
        "token",
        "key",
        "secret",
        "credential",
        "api_key",
        "access_token",
        "refresh_token",
        "client_secret",
    }

    for key, value in filtered.items():
        if isinstance(value, dict):
            filtered[key] = filter_config_secrets(value)
        elif any(sensitive in key.lower() for sensitive in sensitive_keys):
            filtered[key] = "***REDACTED***"

    return filtered


def parse_structured_file(path: Path) -> Any:  # noqa: ANN401
    """Parse a JSON or YAML document from a file.

    Files ending in `.yaml` or `.yml` are parsed as YAML, everything else as JSON.

    Args:
        path: Path to the document

    Returns:
        The parsed document

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content cannot be parsed
    """
    text = path.read_text(encoding="utf-8")

    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e


def parse_bool(value: str | bool) -> bool:
    """Parse a `true`/`false` style flag value.

    Raises:
        ValueError: If the value is not a recognized boolean spelling
    """
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    if normalized in {"true", "1", "yes", "on"}:
        return True
    if normalized in {"false", "0", "no", "off", ""}:
        return False
    raise ValueError(f"Expected true or false, got {value!r}")


def split_csv(value: str) -> list[str]:
    """Split a comma-separated list, dropping blanks."""
    return [item.strip() for item in value.split(",") if item.strip()]
