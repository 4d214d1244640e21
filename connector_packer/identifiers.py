"""Validation of connector identifiers and semantic versions."""

import re

import semver

from connector_packer.constants import MAX_IDENTIFIER_LENGTH
from connector_packer.errors import ValidationError, ValidationErrorKind


IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

_VERSION_PREFIX = re.compile(r"^[=v]+")


def _validate_identifier(value: object, field: str) -> str:
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.fullmatch(value):
        raise ValidationError(
            ValidationErrorKind.INVALID_IDENTIFIER,
            f"{field} must contain only letters, digits, '_' or '-', got {value!r}",
            field=field,
            value=value,
        )
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            ValidationErrorKind.INVALID_IDENTIFIER,
            f"{field} must be at most {MAX_IDENTIFIER_LENGTH} characters, got {len(value)}",
            field=field,
            value=value,
        )
    return value


def validate_name(name: object) -> str:
    """Validate a connector name, returning it unchanged."""
    return _validate_identifier(name, "name")


def validate_type(connector_type: object) -> str:
    """Validate a connector type, returning it unchanged."""
    return _validate_identifier(connector_type, "type")


def clean_version(version: str) -> str:
    """Strip surrounding whitespace and leading `=`/`v` characters."""
    return _VERSION_PREFIX.sub("", version.strip())


def validate_version(version: object, field: str = "version") -> str:
    """Validate a semantic version and return its canonical form.

    The canonical form is `MAJOR.MINOR.PATCH[-PRERELEASE]`: surrounding
    whitespace, a leading `v`/`=` and build metadata are dropped. Applying
    the function to its own output returns the same string.

    Args:
        version: The version string to validate
        field: Name of the input field, used in error reports

    Returns:
        The canonical version string

    Raises:
        ValidationError: If the value is not a parseable semantic version
    """
    if not isinstance(version, str):
        raise ValidationError(
            ValidationErrorKind.INVALID_VERSION,
            f"{field} must be a semantic version string, got {version!r}",
            field=field,
            value=version,
        )
    try:
        parsed = semver.Version.parse(clean_version(version))
    except ValueError as e:
        raise ValidationError(
            ValidationErrorKind.INVALID_VERSION,
            f"{field} is not a valid semantic version: {version!r}",
            field=field,
            value=version,
        ) from e
    return str(parsed.replace(build=None))
