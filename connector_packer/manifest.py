"""Manifest synthesis and checking.

The manifest is the document the host runtime reads to load a packaged
connector. Its key order is part of the compatibility contract with the
host: `id, type, version, entry, [config], instances`.
"""

import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema import ValidationError as SchemaValidationError

from connector_packer._util import parse_structured_file
from connector_packer.constants import MAX_IDENTIFIER_LENGTH, PACKAGED_CONFIG, PACKAGED_ENTRY
from connector_packer.errors import ValidationError
from connector_packer.identifiers import validate_version
from connector_packer.models import ConnectorIdentity, InstanceSpec, ManifestCheckResult


logger = logging.getLogger(__name__)


_IDENTIFIER_SCHEMA: dict[str, Any] = {
    "type": "string",
    "pattern": "^[A-Za-z0-9_-]+$",
    "maxLength": MAX_IDENTIFIER_LENGTH,
}

MANIFEST_JSON_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Connector manifest",
    "type": "object",
    "required": ["id", "type", "version", "entry", "instances"],
    "properties": {
        "id": _IDENTIFIER_SCHEMA,
        "type": _IDENTIFIER_SCHEMA,
        "version": {"type": "string", "minLength": 1},
        "entry": {"type": "string", "minLength": 1},
        "config": {"type": "string", "minLength": 1},
        "instances": {
            "type": "array",
            "minItems": 1,
            "items": InstanceSpec.model_json_schema(by_alias=True),
        },
    },
    "additionalProperties": False,
}
"""JSON schema of a manifest document, used by `check_manifest`."""


def build_manifest(
    identity: ConnectorIdentity,
    has_config: bool,
    instances: list[dict[str, Any]],
    *,
    entry: str = PACKAGED_ENTRY,
    config: str = PACKAGED_CONFIG,
) -> dict[str, Any]:
    """Assemble a manifest document from validated inputs.

    Args:
        identity: Validated connector identity
        has_config: Whether a config module is part of the package
        instances: Normalized instances, copied through unchanged
        entry: Relative path of the entry module
        config: Relative path of the config module, used only if `has_config`

    Returns:
        The manifest as an ordered dictionary
    """
    manifest: dict[str, Any] = {
        "id": identity.name,
        "type": identity.type,
        "version": identity.version,
        "entry": entry,
    }
    if has_config:
        manifest["config"] = config
    manifest["instances"] = [dict(instance) for instance in instances]
    return manifest


def dump_manifest(manifest: dict[str, Any]) -> str:
    """Serialize a manifest the way it is written to disk."""
    return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"


def write_manifest(manifest: dict[str, Any], path: Path) -> Path:
    """Write a manifest document to `path`, replacing any previous one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_manifest(manifest), encoding="utf-8")
    logger.info(f"Wrote manifest to: {path}")
    return path


def _format_schema_error(error: SchemaValidationError) -> str:
    """Format a schema validation error with its location."""
    path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    detailed_error = f"Validation error at '{path}': {error.message}"

    if error.instance is not None and not isinstance(error.instance, dict | list):
        instance_str = str(error.instance)
        if len(instance_str) > 100:
            instance_str = instance_str[:100] + "..."
        detailed_error += f"\n  Actual value: {instance_str}"

    return detailed_error


def check_manifest(manifest: dict[str, Any] | Path) -> ManifestCheckResult:
    """Check a manifest document against the manifest schema.

    Args:
        manifest: A manifest dictionary or a path to a manifest file

    Returns:
        Check result with any errors and warnings
    """
    errors: list[str] = []
    warnings: list[str] = []

    if isinstance(manifest, Path):
        try:
            manifest = parse_structured_file(manifest)
        except (OSError, ValueError) as e:
            return ManifestCheckResult(is_valid=False, errors=[f"Could not read manifest: {e}"])

    if not isinstance(manifest, dict):
        return ManifestCheckResult(
            is_valid=False,
            errors=[f"Manifest must be an object, got {type(manifest).__name__}"],
        )

    validator = Draft202012Validator(MANIFEST_JSON_SCHEMA)
    for schema_error in sorted(validator.iter_errors(manifest), key=lambda e: list(e.path)):
        errors.append(_format_schema_error(schema_error))

    if isinstance(manifest.get("version"), str):
        try:
            canonical = validate_version(manifest["version"])
        except ValidationError as e:
            errors.append(str(e))
        else:
            if canonical != manifest["version"]:
                warnings.append(
                    f"version {manifest['version']!r} is not in canonical form ({canonical!r})"
                )

    instances = manifest.get("instances")
    if isinstance(instances, list):
        seen: set[str] = set()
        for index, instance in enumerate(instances):
            if not isinstance(instance, dict):
                continue
            if isinstance(instance.get("connectorVersion"), str):
                try:
                    validate_version(instance["connectorVersion"], field="connectorVersion")
                except ValidationError as e:
                    errors.append(f"instances -> {index}: {e}")
            instance_id = instance.get("id")
            if isinstance(instance_id, str):
                if instance_id in seen:
                    warnings.append(f"instances -> {index}: duplicate instance id {instance_id!r}")
                seen.add(instance_id)

    return ManifestCheckResult(is_valid=not errors, errors=errors, warnings=warnings)
