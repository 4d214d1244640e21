"""Scaffold generation for new connector source trees.

A scaffold is four files: an index module wiring the requested operations
and the object-class schema, a config module, a package descriptor and a
manifest whose entry points at the sources (a later `pack` run bundles them).

Operation code is generated best-effort: an operation without a template is
skipped with a warning instead of failing the whole scaffold.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

from connector_packer.constants import MANIFEST_FILE_NAME
from connector_packer.errors import TemplateError
from connector_packer.instances import default_instance
from connector_packer.manifest import build_manifest, dump_manifest
from connector_packer.models import ConnectorIdentity, ScaffoldResult, ScaffoldSpec
from connector_packer.templating import find_placeholders, load_template, render


logger = logging.getLogger(__name__)

OBJECT_CLASS_CASE_BLOCK = "objectClassCase"

OPERATION_TEMPLATE_KEYS = frozenset({"connectorName", OBJECT_CLASS_CASE_BLOCK, "objectClass"})
"""Keys an operation template may reference; `objectClass` is bound per case."""

_EXPORT_ALIASES = {"delete": "delete: del"}
"""`delete` is a reserved word, so its function is named `del`."""


def to_class_name(name: str) -> str:
    """Convert a connector name to the PascalCase prefix of generated types."""
    parts = [part for part in re.split(r"[-_]+", name) if part]
    return "".join(part[:1].upper() + part[1:] for part in parts)


def unique_tokens(tokens: list[str], *, case_insensitive: bool = False) -> list[str]:
    """Drop blank and repeated tokens, keeping first occurrences in order."""
    seen: set[str] = set()
    result: list[str] = []
    for token in tokens:
        token = token.strip()
        marker = token.lower() if case_insensitive else token
        if token and marker not in seen:
            seen.add(marker)
            result.append(token)
    return result


def operation_template_name(operation: str, source_extension: str) -> str:
    return f"operation_{operation.lower()}.{source_extension}.template"


def generate_operation_code(
    operation: str,
    object_classes: list[str],
    *,
    connector_name: str,
    source_extension: str,
    templates_dir: Path | None = None,
) -> str | None:
    """Render the method for one operation, with one case per object class.

    Returns:
        The generated code, or None if the operation has no usable template
    """
    template_name = operation_template_name(operation, source_extension)
    try:
        template = load_template(template_name, templates_dir)
    except FileNotFoundError:
        logger.warning(
            f"Template {template_name} not found, operation {operation} will not be generated"
        )
        return None

    context: dict[str, Any] = {
        "connectorName": connector_name,
        OBJECT_CLASS_CASE_BLOCK: [{"objectClass": oc} for oc in object_classes],
    }
    unknown = [key for key in find_placeholders(template) if key not in OPERATION_TEMPLATE_KEYS]
    if unknown:
        logger.warning(
            f"Template {template_name} references unknown keys {unknown}, skipping {operation}"
        )
        return None
    try:
        return render(template, context, strict=True)
    except TemplateError as e:
        logger.warning(f"Template {template_name} could not be rendered, skipping {operation}: {e}")
        return None


def generate_object_class_definitions(
    object_classes: list[str],
    operations: list[str],
    *,
    source_extension: str,
    templates_dir: Path | None = None,
) -> str:
    """Render the schema entry of every object class."""
    template = load_template(f"object_class.{source_extension}.template", templates_dir)
    supports = ", ".join(f'"{op.upper()}"' for op in operations)
    definitions = [
        render(template, {"objectClass": oc, "supports": supports}, strict=True).rstrip("\n")
        for oc in object_classes
    ]
    return ",\n".join(definitions)


def generate_index_module(
    connector_name: str,
    operations: list[str],
    object_classes: list[str],
    *,
    source_extension: str,
    templates_dir: Path | None = None,
) -> tuple[str, list[str], list[str]]:
    """Render the index module.

    Returns:
        Tuple of (module source, generated operations, skipped operations)
    """
    generated: list[str] = []
    skipped: list[str] = []
    methods: list[str] = []

    for operation in operations:
        code = generate_operation_code(
            operation,
            object_classes,
            connector_name=connector_name,
            source_extension=source_extension,
            templates_dir=templates_dir,
        )
        if code is None:
            skipped.append(operation)
            continue
        generated.append(operation)
        methods.append(code)

    exports = [_EXPORT_ALIASES.get(op.lower(), op.lower()) for op in generated]

    context = {
        "connectorName": connector_name,
        "objectClassDefinitions": generate_object_class_definitions(
            object_classes,
            generated,
            source_extension=source_extension,
            templates_dir=templates_dir,
        ),
        "operationMethods": "".join(methods),
        "operationExports": ",\n    ".join(exports),
    }
    template = load_template(f"index.{source_extension}.template", templates_dir)
    return render(template, context, strict=True), generated, skipped


def generate_config_module(
    connector_name: str,
    *,
    source_extension: str,
    templates_dir: Path | None = None,
) -> str:
    template = load_template(f"config.{source_extension}.template", templates_dir)
    return render(template, {"connectorName": connector_name}, strict=True)


def generate_package_descriptor(name: str, version: str, source_extension: str) -> dict[str, Any]:
    return {
        "name": f"{name}-connector",
        "version": version,
        "type": "module",
        "main": f"./index.{source_extension}",
        "dependencies": {},
    }


def generate_scaffold_manifest(identity: ConnectorIdentity, source_extension: str) -> dict[str, Any]:
    """Build the scaffold manifest; entries point at sources, not bundles."""
    return build_manifest(
        identity,
        True,
        [default_instance(identity.name)],
        entry=f"./index.{source_extension}",
        config=f"./config.{source_extension}",
    )


def _write(path: Path, content: str, files: list[Path]) -> None:
    path.write_text(content, encoding="utf-8")
    files.append(path)
    logger.info(f"Created {path}")


def generate_scaffold(spec: ScaffoldSpec, templates_dir: Path | None = None) -> ScaffoldResult:
    """Generate a new connector source tree.

    Files are written one after another. A failed write is raised as-is and
    files written before it are left in place.

    Args:
        spec: Scaffold inputs
        templates_dir: Optional template directory override

    Returns:
        Details of the generated files and operations

    Raises:
        ValidationError: If the name, type or version is invalid
        TemplateError: If a core template cannot be rendered
        FileNotFoundError: If a core template is missing
        OSError: If a file cannot be written
    """
    identity = ConnectorIdentity.create(spec.name, spec.connector_type, spec.version)
    operations = unique_tokens(spec.operations, case_insensitive=True)
    object_classes = unique_tokens(spec.object_classes)
    extension = spec.source_extension.lstrip(".")
    connector_name = to_class_name(identity.name)

    index_source, generated, skipped = generate_index_module(
        connector_name,
        operations,
        object_classes,
        source_extension=extension,
        templates_dir=templates_dir,
    )
    config_source = generate_config_module(
        connector_name, source_extension=extension, templates_dir=templates_dir
    )
    package_descriptor = generate_package_descriptor(identity.name, identity.version, extension)
    manifest = generate_scaffold_manifest(identity, extension)

    directory = spec.target_directory.resolve()
    directory.mkdir(parents=True, exist_ok=True)
    logger.info(f"Generating connector scaffold in {directory}")

    files: list[Path] = []
    _write(directory / f"index.{extension}", index_source, files)
    _write(directory / f"config.{extension}", config_source, files)
    _write(directory / "package.json", json.dumps(package_descriptor, indent=2) + "\n", files)
    _write(directory / MANIFEST_FILE_NAME, dump_manifest(manifest), files)

    warnings = [f"Operation {op} was not generated (no usable template)" for op in skipped]
    return ScaffoldResult(
        directory=directory,
        files=files,
        generated_operations=generated,
        skipped_operations=skipped,
        warnings=warnings,
    )


def render_next_steps(result: ScaffoldResult, spec: ScaffoldSpec) -> list[str]:
    """Follow-up instructions for a freshly generated scaffold."""
    extension = spec.source_extension.lstrip(".")
    return [
        f"Implement the TODO sections in {result.directory / f'index.{extension}'}",
        f"Add configuration properties in {result.directory / f'config.{extension}'}",
        (
            "Build the connector using: connector-packer pack "
            f"--src {spec.target_directory} --name {spec.name} --type {spec.connector_type} "
            f"--version {spec.version} --entry ./index.{extension} --config ./config.{extension}"
        ),
    ]
