"""Normalization of per-tenant connector instances."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from connector_packer._util import parse_structured_file
from connector_packer.errors import ValidationError, ValidationErrorKind
from connector_packer.identifiers import validate_version


logger = logging.getLogger(__name__)

INSTANCES_SHAPE_HINT = "an array of { id, config? } or { instances: [...] }"


def default_instance(fallback_id: str) -> dict[str, Any]:
    """Build the synthetic instance used when none are supplied."""
    return {"id": fallback_id, "config": {}}


def _extract_instance_list(raw: Any) -> list[Any]:  # noqa: ANN401
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, Mapping) and isinstance(raw.get("instances"), list):
        return raw["instances"]
    raise ValidationError(
        ValidationErrorKind.MALFORMED_INSTANCE_FILE,
        f"Instances must be {INSTANCES_SHAPE_HINT}, got {type(raw).__name__}",
        field="instances",
    )


def _validate_instance(instance: Any, index: int) -> dict[str, Any]:  # noqa: ANN401
    if not isinstance(instance, Mapping):
        raise ValidationError(
            ValidationErrorKind.MALFORMED_INSTANCE_FILE,
            f"Instance at position {index} must be an object, got {type(instance).__name__}",
            field="instances",
            value=instance,
            index=index,
        )

    instance_id = instance.get("id")
    if not isinstance(instance_id, str) or not instance_id.strip():
        raise ValidationError(
            ValidationErrorKind.MISSING_INSTANCE_ID,
            f"Instance at position {index} is missing a non-empty 'id'",
            field="id",
            value=instance_id,
            index=index,
        )

    if "config" in instance and not isinstance(instance["config"], Mapping):
        raise ValidationError(
            ValidationErrorKind.MALFORMED_INSTANCE_FILE,
            f"Instance '{instance_id}' at position {index} has a non-object 'config'",
            field="config",
            value=instance["config"],
            index=index,
        )

    if "connectorVersion" in instance:
        try:
            validate_version(instance["connectorVersion"], field="connectorVersion")
        except ValidationError as e:
            raise ValidationError(
                ValidationErrorKind.INVALID_VERSION,
                f"Instance '{instance_id}' at position {index} has an invalid "
                f"connectorVersion: {instance['connectorVersion']!r}",
                field="connectorVersion",
                value=instance["connectorVersion"],
                index=index,
            ) from e

    return dict(instance)


def normalize_instances(raw: Any, fallback_id: str) -> list[dict[str, Any]]:  # noqa: ANN401
    """Validate the instance list and apply the single-instance default.

    Args:
        raw: A list of instances, a mapping with an `instances` list, or None
        fallback_id: Id of the synthetic instance used when the list is empty

    Returns:
        The instances in their original order, otherwise unchanged

    Raises:
        ValidationError: If the shape is wrong, an id is missing, or a
            `connectorVersion` is not a semantic version
    """
    entries = _extract_instance_list(raw)
    if not entries:
        logger.info(f"No instances supplied, defaulting to a single instance '{fallback_id}'")
        return [default_instance(fallback_id)]

    return [_validate_instance(instance, index) for index, instance in enumerate(entries)]


def load_instances_file(path: Path) -> Any:  # noqa: ANN401
    """Read an instances file (JSON, or YAML for `.yaml`/`.yml`).

    Raises:
        ValidationError: If the file is missing or cannot be parsed
    """
    if not path.is_file():
        raise ValidationError(
            ValidationErrorKind.MISSING_FILE,
            f"instances file not found: {path}",
            field="instances",
            value=str(path),
        )
    try:
        return parse_structured_file(path)
    except (OSError, ValueError) as e:
        raise ValidationError(
            ValidationErrorKind.MALFORMED_INSTANCE_FILE,
            f"Could not parse instances file {path}: {e}",
            field="instances",
            value=str(path),
        ) from e
