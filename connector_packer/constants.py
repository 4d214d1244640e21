"""Constants for Connector Packer.

This module contains configuration constants and environment variable names
used throughout the packaging and scaffolding pipelines.
"""

import os
from pathlib import Path


CONNECTOR_PACKER_DIST_DIR = "CONNECTOR_PACKER_DIST_DIR"
"""Environment variable name for the packaging output root.

Each packaged connector is written to `<dist>/<name>/`. Overridden by the
`--dist` flag of `connector-packer pack`.

Default: ./dist (relative to the working directory)
"""

CONNECTOR_PACKER_ESBUILD_PATH = "CONNECTOR_PACKER_ESBUILD_PATH"
"""Environment variable name for the bundler executable.

Can be a bare command name resolved on PATH or an absolute path, e.g. a
project-local `node_modules/.bin/esbuild`.

Default: esbuild
"""

CONNECTOR_PACKER_NODE_PATH = "CONNECTOR_PACKER_NODE_PATH"
"""Environment variable name for the JavaScript runtime used to load bundles.

Default: node
"""

CONNECTOR_PACKER_TEMPLATES_DIR = "CONNECTOR_PACKER_TEMPLATES_DIR"
"""Environment variable name for a scaffold template override directory.

If set, scaffold templates are read from this directory instead of the
templates shipped inside the package. Must contain files with the same names.
"""

CONNECTOR_PACKER_SUBPROCESS_TIMEOUT = "CONNECTOR_PACKER_SUBPROCESS_TIMEOUT"
"""Environment variable name for the bundler/runtime subprocess timeout.

Value in seconds. If unset, subprocesses run to completion.
"""

CONNECTOR_PACKER_DEBUG = "CONNECTOR_PACKER_DEBUG"
"""Environment variable name for debug mode.

If set to "true", "1", or "yes" (case-insensitive), the CLI logs at DEBUG
level and prints full tracebacks for fatal errors.

Default: false
"""

DEFAULT_DIST_DIR = Path("dist")
DEFAULT_ESBUILD_EXECUTABLE = "esbuild"
DEFAULT_NODE_EXECUTABLE = "node"

PACKAGED_ENTRY = "./index.js"
"""Relative path of the bundled entry artifact inside a packaged connector."""

PACKAGED_CONFIG = "./config.js"
"""Relative path of the bundled config artifact inside a packaged connector."""

MANIFEST_FILE_NAME = "manifest.json"

MODULE_SCOPE_FILE_NAME = "package.json"
MODULE_SCOPE = {"type": "module"}
"""Package descriptor written next to the bundles so node loads `.js` files as ES modules."""

MAX_IDENTIFIER_LENGTH = 128

DEFAULT_SCAFFOLD_VERSION = "1.0.0"
DEFAULT_SCAFFOLD_OPERATIONS = ("CREATE", "GET", "UPDATE", "DELETE", "SEARCH")
DEFAULT_SCAFFOLD_OBJECT_CLASSES = ("__ACCOUNT__", "__GROUP__")
DEFAULT_SOURCE_EXTENSION = "ts"

TEMPLATES_DIR = Path(__file__).parent / "templates"
"""Directory of the scaffold templates shipped with the package."""

TRUTHY_ENV_VALUES = {"1", "true", "yes"}


def is_debug_enabled() -> bool:
    """Check whether debug mode is enabled through the environment."""
    return os.environ.get(CONNECTOR_PACKER_DEBUG, "").strip().lower() in TRUTHY_ENV_VALUES


def get_subprocess_timeout() -> float | None:
    """Get the subprocess timeout in seconds, or None to wait indefinitely."""
    raw = os.environ.get(CONNECTOR_PACKER_SUBPROCESS_TIMEOUT, "").strip()
    if not raw:
        return None
    try:
        timeout = float(raw)
    except ValueError as e:
        raise ValueError(
            f"{CONNECTOR_PACKER_SUBPROCESS_TIMEOUT} must be a number of seconds, got {raw!r}"
        ) from e
    return timeout if timeout > 0 else None
