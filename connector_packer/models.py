"""Data models for the packaging and scaffolding pipelines."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from connector_packer.constants import (
    DEFAULT_SCAFFOLD_OBJECT_CLASSES,
    DEFAULT_SCAFFOLD_OPERATIONS,
    DEFAULT_SCAFFOLD_VERSION,
    DEFAULT_SOURCE_EXTENSION,
)
from connector_packer.identifiers import validate_name, validate_type, validate_version


class ConnectorIdentity(BaseModel):
    """Validated identity of a packaged connector.

    Use `ConnectorIdentity.create()` to build one from raw inputs so the
    identifier and version rules are applied.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    version: str

    @classmethod
    def create(cls, name: str, connector_type: str, version: str) -> ConnectorIdentity:
        """Validate raw inputs and build an identity with a canonical version."""
        return cls(
            name=validate_name(name),
            type=validate_type(connector_type),
            version=validate_version(version),
        )


class InstanceSpec(BaseModel):
    """A named, independently configured activation of a connector."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    config: dict[str, Any] | None = None
    connector_version: str | None = Field(default=None, alias="connectorVersion")


class BundleOptions(BaseModel):
    """Options passed to the external bundler."""

    model_config = ConfigDict(frozen=True)

    minify: bool = False
    sourcemap: bool = True
    target: str = "node18"
    format: Literal["esm", "cjs", "iife"] = "esm"
    platform: Literal["node", "browser", "neutral"] = "node"


class PackageRequest(BaseModel):
    """All inputs of a packaging run."""

    src: Path
    name: str
    type: str
    version: str
    entry: str
    config: str | None = None
    instances: Path | None = None
    minify: bool = False
    dist_dir: Path | None = None
    verify: bool = True


class PackageResult(BaseModel):
    """Result of a successful packaging run."""

    identity: ConnectorIdentity
    output_dir: Path
    manifest_path: Path
    manifest: dict[str, Any]
    artifacts: list[Path] = []
    warnings: list[str] = []


class ExportProbe(BaseModel):
    """Outcome of dynamically loading a bundle and inspecting its export."""

    loaded: bool
    export_type: str | None = None
    keys: list[str] = []
    schema_type: str | None = None
    diagnostic: str | None = None

    @property
    def has_factory(self) -> bool:
        return self.export_type == "function"


class ManifestCheckResult(BaseModel):
    """Result of checking a manifest document against the manifest schema."""

    is_valid: bool
    errors: list[str] = []
    warnings: list[str] = []


class ScaffoldSpec(BaseModel):
    """Inputs of a scaffold generation run.

    `type` defaults to `name` and `directory` defaults to
    `./src/<name>-<version>` when left unset.
    """

    name: str
    version: str = DEFAULT_SCAFFOLD_VERSION
    type: str | None = None
    directory: Path | None = None
    operations: list[str] = Field(default_factory=lambda: list(DEFAULT_SCAFFOLD_OPERATIONS))
    object_classes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SCAFFOLD_OBJECT_CLASSES)
    )
    source_extension: str = DEFAULT_SOURCE_EXTENSION

    @property
    def connector_type(self) -> str:
        return self.type or self.name

    @property
    def target_directory(self) -> Path:
        if self.directory is not None:
            return self.directory
        return Path("src") / f"{self.name}-{self.version}"


class ScaffoldResult(BaseModel):
    """Result of a scaffold generation run."""

    directory: Path
    files: list[Path] = []
    generated_operations: list[str] = []
    skipped_operations: list[str] = []
    warnings: list[str] = []
