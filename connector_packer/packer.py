"""Packaging pipeline for connectors.

A packaging run validates its inputs, bundles the entry module (and the
optional config module), verifies the bundled entry, normalizes the instance
list and writes `<dist>/<name>/manifest.json`. The first fatal error aborts
the run; a manifest left by a previous run is removed before bundling and the
new one is only written once every earlier step succeeded.
"""

import json
import logging
import os
from pathlib import Path

from connector_packer.bundler import bundle
from connector_packer.constants import (
    CONNECTOR_PACKER_DIST_DIR,
    DEFAULT_DIST_DIR,
    MANIFEST_FILE_NAME,
    MODULE_SCOPE,
    MODULE_SCOPE_FILE_NAME,
    PACKAGED_CONFIG,
    PACKAGED_ENTRY,
)
from connector_packer.filesystem import validate_config_file, validate_entry_point
from connector_packer.instances import load_instances_file, normalize_instances
from connector_packer.manifest import build_manifest, write_manifest
from connector_packer.models import BundleOptions, ConnectorIdentity, PackageRequest, PackageResult
from connector_packer.verifier import verify_bundled_entry


logger = logging.getLogger(__name__)


def resolve_dist_dir(dist_dir: Path | None = None) -> Path:
    """Resolve the packaging output root.

    Precedence: explicit argument, then `CONNECTOR_PACKER_DIST_DIR`, then
    `./dist`.
    """
    if dist_dir is not None:
        return dist_dir.resolve()
    env_value = os.environ.get(CONNECTOR_PACKER_DIST_DIR)
    if env_value:
        return Path(env_value).expanduser().resolve()
    return DEFAULT_DIST_DIR.resolve()


def write_module_scope(output_dir: Path) -> Path:
    """Mark the bundles in `output_dir` as ES modules for the node runtime."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / MODULE_SCOPE_FILE_NAME
    path.write_text(json.dumps(MODULE_SCOPE) + "\n", encoding="utf-8")
    return path


def _artifact_path(output_dir: Path, relative: str) -> Path:
    return output_dir / relative.removeprefix("./")


def package_connector(request: PackageRequest) -> PackageResult:
    """Package a connector into `<dist>/<name>/`.

    Args:
        request: Packaging inputs

    Returns:
        Details of the written package

    Raises:
        ValidationError: If an identifier, version, file or instance is invalid
        BundleError: If the bundler fails
        ExportError: If the bundled entry has no callable factory export
    """
    identity = ConnectorIdentity.create(request.name, request.type, request.version)
    logger.info(
        f"Packing connector '{identity.name}' (type='{identity.type}', version={identity.version})"
    )

    src = request.src.resolve()
    entry_path, warnings = validate_entry_point(src / request.entry)
    config_path = validate_config_file(src / request.config) if request.config else None

    output_dir = resolve_dist_dir(request.dist_dir) / identity.name
    options = BundleOptions(minify=request.minify)

    manifest_path = output_dir / MANIFEST_FILE_NAME
    if manifest_path.exists():
        logger.info(f"Removing previous manifest: {manifest_path}")
        manifest_path.unlink()

    entry_out = _artifact_path(output_dir, PACKAGED_ENTRY)
    artifacts = bundle(entry_path, entry_out, options)

    if config_path is not None:
        artifacts += bundle(config_path, _artifact_path(output_dir, PACKAGED_CONFIG), options)

    write_module_scope(output_dir)

    if request.verify:
        warnings += verify_bundled_entry(entry_out)
    else:
        logger.info("Skipping bundled entry verification")

    raw_instances = load_instances_file(request.instances) if request.instances else None
    instances = normalize_instances(raw_instances, identity.name)

    manifest = build_manifest(identity, config_path is not None, instances)
    write_manifest(manifest, manifest_path)

    logger.info(f"Connector '{identity.name}' ready at {output_dir}")
    return PackageResult(
        identity=identity,
        output_dir=output_dir,
        manifest_path=manifest_path,
        manifest=manifest,
        artifacts=artifacts,
        warnings=warnings,
    )
