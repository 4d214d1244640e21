"""Adapter around the external `esbuild` bundler.

The bundler is treated as a black box: it is run once per artifact with a
fixed configuration profile, and any failure is reported verbatim.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

from connector_packer.constants import (
    CONNECTOR_PACKER_ESBUILD_PATH,
    DEFAULT_ESBUILD_EXECUTABLE,
    get_subprocess_timeout,
)
from connector_packer.errors import BundleError
from connector_packer.models import BundleOptions


logger = logging.getLogger(__name__)


def resolve_esbuild_executable() -> str:
    """Resolve the bundler executable from the environment or PATH.

    Raises:
        BundleError: If the executable cannot be found
    """
    configured = os.environ.get(CONNECTOR_PACKER_ESBUILD_PATH, DEFAULT_ESBUILD_EXECUTABLE)
    resolved = shutil.which(configured)
    if resolved is None:
        raise BundleError(
            f"Bundler executable not found: {configured!r}. "
            f"Install esbuild or set {CONNECTOR_PACKER_ESBUILD_PATH}.",
        )
    return resolved


def build_esbuild_args(input_path: Path, output_path: Path, options: BundleOptions) -> list[str]:
    """Build the esbuild command line arguments (without the executable)."""
    args = [
        str(input_path),
        "--bundle",
        f"--outfile={output_path}",
        f"--platform={options.platform}",
        f"--format={options.format}",
        f"--target={options.target}",
        "--legal-comments=none",
        "--log-level=warning",
    ]
    if options.sourcemap:
        args.append("--sourcemap")
    if options.minify:
        args.append("--minify")
    return args


def bundle(input_path: Path, output_path: Path, options: BundleOptions | None = None) -> list[Path]:
    """Bundle a module and everything it imports into one self-contained file.

    Args:
        input_path: Entry module to bundle
        output_path: Path of the single output module
        options: Bundler options (defaults to `BundleOptions()`)

    Returns:
        Paths of the produced artifacts (the bundle, then its source map)

    Raises:
        BundleError: If the bundler is missing or reports a failure
    """
    options = options or BundleOptions()
    executable = resolve_esbuild_executable()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    command = [executable, *build_esbuild_args(input_path, output_path, options)]
    logger.debug(f"Running bundler: {' '.join(command)}")

    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=False,
            timeout=get_subprocess_timeout(),
        )
    except subprocess.TimeoutExpired as e:
        raise BundleError(
            f"Bundler timed out after {e.timeout} seconds while bundling {input_path}",
        ) from e
    except OSError as e:
        raise BundleError(f"Failed to run bundler for {input_path}", diagnostic=str(e)) from e

    if completed.returncode != 0:
        diagnostic = completed.stderr or completed.stdout
        logger.error(f"Bundler failed for {input_path} (exit code {completed.returncode})")
        raise BundleError(
            f"Bundling {input_path} failed",
            diagnostic=diagnostic,
            returncode=completed.returncode,
        )

    if completed.stderr.strip():
        logger.warning(f"Bundler reported for {input_path}: {completed.stderr.strip()}")

    artifacts = [output_path]
    source_map = output_path.with_name(output_path.name + ".map")
    if options.sourcemap and source_map.exists():
        artifacts.append(source_map)

    logger.info(f"Bundled {input_path} -> {output_path}")
    return artifacts
