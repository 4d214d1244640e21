"""Filesystem probes for connector source files."""

import logging
import re
from pathlib import Path

from connector_packer.errors import ValidationError, ValidationErrorKind


logger = logging.getLogger(__name__)

EXPORT_MARKERS = (
    re.compile(r"\bexport\s+default\b"),
    re.compile(r"\bexport\s*\{[^}]*\bas\s+default\b[^}]*\}"),
    re.compile(r"\bexport\s+(?:async\s+)?function\s+factory\b"),
    re.compile(r"\bexport\s+(?:const|let|var)\s+factory\b"),
    re.compile(r"\bmodule\.exports\b"),
    re.compile(r"\bexports\.default\b"),
)
"""Patterns that suggest a module exposes a factory. Heuristic only."""


def _require_file(path: Path, field: str) -> Path:
    if not path.is_file():
        raise ValidationError(
            ValidationErrorKind.MISSING_FILE,
            f"{field} file not found: {path}",
            field=field,
            value=str(path),
        )
    return path.resolve()


def has_export_marker(source: str) -> bool:
    """Check whether source text contains a recognizable export marker."""
    return any(pattern.search(source) for pattern in EXPORT_MARKERS)


def validate_entry_point(path: Path) -> tuple[Path, list[str]]:
    """Check that the connector entry point exists and looks like a module.

    Args:
        path: Path to the entry point source file

    Returns:
        Tuple of (resolved path, list of non-fatal warnings)

    Raises:
        ValidationError: If the path is not a regular file
    """
    resolved = _require_file(path, "entry")

    warnings: list[str] = []
    try:
        source = resolved.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ValidationError(
            ValidationErrorKind.MISSING_FILE,
            f"entry file could not be read: {resolved} ({e})",
            field="entry",
            value=str(path),
        ) from e

    if not has_export_marker(source):
        message = f"No export marker found in {resolved}; the bundle may not expose a factory"
        logger.warning(message)
        warnings.append(message)

    return resolved, warnings


def validate_config_file(path: Path) -> Path:
    """Check that the connector config source exists.

    Raises:
        ValidationError: If the path is not a regular file
    """
    return _require_file(path, "config")
