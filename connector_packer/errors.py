"""Error taxonomy for connector packaging and scaffolding.

Every fatal failure raised by the packaging pipeline derives from
`ConnectorPackerError`, so callers (the CLI and the MCP tools) can report it
as a single concise line and map it to a non-zero exit code.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any


class ValidationErrorKind(str, Enum):
    """Failure domains for input validation."""

    INVALID_IDENTIFIER = "InvalidIdentifier"
    """A connector name or type does not match the identifier grammar."""

    INVALID_VERSION = "InvalidVersion"
    """A version string cannot be parsed as a semantic version."""

    MISSING_FILE = "MissingFile"
    """An entry point, config source or instances file is not a regular file."""

    MALFORMED_INSTANCE_FILE = "MalformedInstanceFile"
    """The instances input has an unexpected shape or cannot be parsed."""

    MISSING_INSTANCE_ID = "MissingInstanceId"
    """An instance entry has no usable `id`."""


class ExportErrorKind(str, Enum):
    """Failure domains for bundled-output verification."""

    MISSING_FACTORY_EXPORT = "MissingFactoryExport"


class ConnectorPackerError(Exception):
    """Base class for all fatal packaging errors."""


class ValidationError(ConnectorPackerError):
    """Raised when an input fails validation.

    Args:
        kind: The failure domain
        message: Human readable description
        field: Name of the offending input field, if any
        value: The offending value, if any
        index: Zero-based position of the offending instance, if any
    """

    def __init__(
        self,
        kind: ValidationErrorKind,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.field = field
        self.value = value
        self.index = index

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.args[0]}"


class BundleError(ConnectorPackerError):
    """Raised when the external bundler fails.

    The bundler's own diagnostic output is kept verbatim in `diagnostic`.
    """

    def __init__(
        self,
        message: str,
        *,
        diagnostic: str = "",
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic
        self.returncode = returncode

    def __str__(self) -> str:
        if self.diagnostic:
            return f"{self.args[0]}\n{self.diagnostic.rstrip()}"
        return str(self.args[0])


class ExportError(ConnectorPackerError):
    """Raised when a bundle does not expose a callable factory."""

    def __init__(self, kind: ExportErrorKind, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.path = path

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.args[0]}"


class TemplateError(ConnectorPackerError):
    """Raised when a template cannot be rendered against its context."""
