"""Tests for connector scaffold generation."""

import json
import logging
from pathlib import Path

import pytest

from connector_packer.errors import ValidationError, ValidationErrorKind
from connector_packer.manifest import check_manifest
from connector_packer.models import ScaffoldSpec
from connector_packer.scaffold import (
    generate_scaffold,
    render_next_steps,
    to_class_name,
    unique_tokens,
)
from connector_packer.templating import get_templates_dir


@pytest.fixture(autouse=True)
def _packaged_templates(monkeypatch):
    monkeypatch.delenv("CONNECTOR_PACKER_TEMPLATES_DIR", raising=False)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("salesforce", "Salesforce"),
        ("my-connector", "MyConnector"),
        ("ms_graph-api", "MsGraphApi"),
        ("hr2", "Hr2"),
        ("already-Pascal", "AlreadyPascal"),
    ],
)
def test_to_class_name(name, expected):
    """Test PascalCase conversion of connector names."""
    assert to_class_name(name) == expected


def test_unique_tokens():
    """Test order-preserving de-duplication."""
    assert unique_tokens(["get", "GET", " search ", "", "get"], case_insensitive=True) == [
        "get",
        "search",
    ]
    assert unique_tokens(["a", "A", "a"]) == ["a", "A"]


def test_generate_scaffold_default(tmp_path):
    """Test a full scaffold with the default operations and object classes."""
    spec = ScaffoldSpec(name="salesforce", directory=tmp_path / "salesforce")
    result = generate_scaffold(spec)

    directory = (tmp_path / "salesforce").resolve()
    assert result.directory == directory
    assert result.files == [
        directory / "index.ts",
        directory / "config.ts",
        directory / "package.json",
        directory / "manifest.json",
    ]
    assert result.generated_operations == ["CREATE", "GET", "UPDATE", "DELETE", "SEARCH"]
    assert result.skipped_operations == []
    assert result.warnings == []

    index = (directory / "index.ts").read_text(encoding="utf-8")
    assert "{{" not in index
    assert "export default async function factory" in index
    assert "SalesforceConfiguration" in index
    # one case per object class in each of the five operations
    assert index.count('case "__ACCOUNT__"') == 5
    assert index.count('case "__GROUP__"') == 5
    assert index.count('["CREATE", "GET", "UPDATE", "DELETE", "SEARCH"]') == 2
    assert "async function del(" in index
    assert "delete: del" in index
    for export in ("create", "get", "update", "search"):
        assert f"    {export}" in index

    config = (directory / "config.ts").read_text(encoding="utf-8")
    assert "{{" not in config
    assert "export interface SalesforceConfiguration" in config


def test_generate_scaffold_package_and_manifest(tmp_path):
    """Test the exact package descriptor and manifest of a scaffold."""
    spec = ScaffoldSpec(name="hr", version="2.1.0", directory=tmp_path / "hr")
    result = generate_scaffold(spec)

    package = json.loads((result.directory / "package.json").read_text(encoding="utf-8"))
    assert package == {
        "name": "hr-connector",
        "version": "2.1.0",
        "type": "module",
        "main": "./index.ts",
        "dependencies": {},
    }

    manifest_text = (result.directory / "manifest.json").read_text(encoding="utf-8")
    assert manifest_text.endswith("\n")
    manifest = json.loads(manifest_text)
    assert list(manifest) == ["id", "type", "version", "entry", "config", "instances"]
    assert manifest == {
        "id": "hr",
        "type": "hr",
        "version": "2.1.0",
        "entry": "./index.ts",
        "config": "./config.ts",
        "instances": [{"id": "hr", "config": {}}],
    }
    assert check_manifest(result.directory / "manifest.json").is_valid


def test_generate_scaffold_custom_type_and_version(tmp_path):
    """Test that the type flows into the manifest and the version is canonicalized."""
    spec = ScaffoldSpec(
        name="graph", version="v1.0.0", type="msgraph", directory=tmp_path / "graph"
    )
    result = generate_scaffold(spec)

    manifest = json.loads((result.directory / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["type"] == "msgraph"
    assert manifest["version"] == "1.0.0"


def test_generate_scaffold_subset_of_operations(tmp_path):
    """Test that supports and exports only list generated operations."""
    spec = ScaffoldSpec(
        name="hr",
        directory=tmp_path / "hr",
        operations=["get", "SEARCH", "Get"],
        object_classes=["__ACCOUNT__"],
    )
    result = generate_scaffold(spec)

    assert result.generated_operations == ["get", "SEARCH"]
    index = (result.directory / "index.ts").read_text(encoding="utf-8")
    assert '["GET", "SEARCH"]' in index
    assert "async function create(" not in index
    assert "delete: del" not in index
    assert index.count('case "__ACCOUNT__"') == 2


def test_generate_scaffold_sync_operation(tmp_path):
    """Test that the optional sync operation has a template."""
    spec = ScaffoldSpec(name="hr", directory=tmp_path / "hr", operations=["SYNC"])
    result = generate_scaffold(spec)

    assert result.generated_operations == ["SYNC"]
    index = (result.directory / "index.ts").read_text(encoding="utf-8")
    assert "async function sync(" in index


def test_generate_scaffold_unknown_operation_is_skipped(tmp_path):
    """Test that an operation without a template is skipped with a warning."""
    spec = ScaffoldSpec(name="hr", directory=tmp_path / "hr", operations=["GET", "PATCH"])
    result = generate_scaffold(spec)

    assert result.generated_operations == ["GET"]
    assert result.skipped_operations == ["PATCH"]
    assert result.warnings == ["Operation PATCH was not generated (no usable template)"]
    index = (result.directory / "index.ts").read_text(encoding="utf-8")
    assert '["GET"]' in index
    assert "patch" not in index.lower()


def _copy_templates(tmp_path: Path, get_template: str) -> Path:
    templates = tmp_path / "templates"
    templates.mkdir()
    for template in get_templates_dir().glob("*.template"):
        (templates / template.name).write_text(
            template.read_text(encoding="utf-8"), encoding="utf-8"
        )
    (templates / "operation_get.ts.template").write_text(get_template, encoding="utf-8")
    return templates


def test_generate_scaffold_broken_operation_template_is_skipped(tmp_path, caplog):
    """Test that an operation template with an unknown key is skipped."""
    templates = _copy_templates(tmp_path, "  async function get() { return {{mystery}}; }\n")

    spec = ScaffoldSpec(name="hr", directory=tmp_path / "hr", operations=["GET", "SEARCH"])
    with caplog.at_level(logging.WARNING, logger="connector_packer.scaffold"):
        result = generate_scaffold(spec, templates_dir=templates)

    assert result.generated_operations == ["SEARCH"]
    assert result.skipped_operations == ["GET"]
    assert "{{mystery}}" not in (result.directory / "index.ts").read_text(encoding="utf-8")
    assert "references unknown keys ['mystery'], skipping GET" in caplog.text


def test_generate_scaffold_misspelled_block_tag_is_skipped(tmp_path, caplog):
    """Test that an operation template with a misspelled closing tag is skipped."""
    templates = _copy_templates(
        tmp_path,
        "  async function get(objectClass: string) {\n"
        "    switch (objectClass) {\n"
        '{{#objectClassCase}}      case "{{objectClass}}":\n'
        "        return {};\n"
        "{{/objectClasCase}}    }\n"
        "  }\n",
    )

    spec = ScaffoldSpec(name="hr", directory=tmp_path / "hr", operations=["GET", "SEARCH"])
    with caplog.at_level(logging.WARNING, logger="connector_packer.scaffold"):
        result = generate_scaffold(spec, templates_dir=templates)

    assert result.generated_operations == ["SEARCH"]
    assert result.skipped_operations == ["GET"]
    index = (result.directory / "index.ts").read_text(encoding="utf-8")
    assert "{{" not in index
    assert "Unmatched template block tags" in caplog.text


def test_generate_scaffold_default_directory(tmp_path, monkeypatch):
    """Test the ./src/<name>-<version> default target directory."""
    monkeypatch.chdir(tmp_path)
    result = generate_scaffold(ScaffoldSpec(name="hr", version="1.2.3"))

    assert result.directory == (tmp_path / "src" / "hr-1.2.3").resolve()
    assert (result.directory / "index.ts").is_file()


@pytest.mark.parametrize(
    "kwargs,kind",
    [
        pytest.param({"name": "my connector"}, ValidationErrorKind.INVALID_IDENTIFIER, id="name"),
        pytest.param(
            {"name": "hr", "type": "bad type"}, ValidationErrorKind.INVALID_IDENTIFIER, id="type"
        ),
        pytest.param({"name": "hr", "version": "1.0"}, ValidationErrorKind.INVALID_VERSION, id="ver"),
    ],
)
def test_generate_scaffold_invalid_inputs_write_nothing(tmp_path, kwargs, kind):
    """Test that invalid inputs fail before anything is written."""
    target = tmp_path / "out"
    with pytest.raises(ValidationError) as exc_info:
        generate_scaffold(ScaffoldSpec(directory=target, **kwargs))

    assert exc_info.value.kind == kind
    assert not target.exists()


def test_generate_scaffold_partial_write_failure(tmp_path):
    """Test that a failed write leaves earlier files in place."""
    target = tmp_path / "hr"
    (target / "package.json").mkdir(parents=True)

    with pytest.raises(OSError):
        generate_scaffold(ScaffoldSpec(name="hr", directory=target))

    assert (target / "index.ts").is_file()
    assert (target / "config.ts").is_file()
    assert not (target / "manifest.json").exists()


def test_generate_scaffold_overwrites_existing_files(tmp_path):
    """Test that re-running the scaffold replaces previous output."""
    target = tmp_path / "hr"
    target.mkdir()
    (target / "index.ts").write_text("old", encoding="utf-8")

    generate_scaffold(ScaffoldSpec(name="hr", directory=target))

    assert (target / "index.ts").read_text(encoding="utf-8") != "old"


def test_render_next_steps(tmp_path):
    """Test that next steps include a ready-to-run pack command."""
    spec = ScaffoldSpec(name="hr", version="1.0.0", directory=Path("src/hr-1.0.0"))
    result = generate_scaffold(spec.model_copy(update={"directory": tmp_path / "hr"}))

    steps = render_next_steps(result, spec)
    assert len(steps) == 3
    assert steps[2] == (
        "Build the connector using: connector-packer pack "
        f"--src {Path('src/hr-1.0.0')} --name hr --type hr --version 1.0.0 "
        "--entry ./index.ts --config ./config.ts"
    )
