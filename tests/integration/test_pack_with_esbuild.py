"""Integration tests that run the real esbuild bundler and node runtime."""

import json
import shutil
from pathlib import Path

import pytest

from connector_packer.errors import BundleError, ExportError, ExportErrorKind
from connector_packer.models import PackageRequest
from connector_packer.packer import package_connector
from connector_packer.verifier import inspect_factory


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("esbuild") is None, reason="esbuild is not installed"),
    pytest.mark.skipif(shutil.which("node") is None, reason="node is not installed"),
]


@pytest.fixture(autouse=True)
def _real_executables(monkeypatch):
    for name in (
        "CONNECTOR_PACKER_ESBUILD_PATH",
        "CONNECTOR_PACKER_NODE_PATH",
        "CONNECTOR_PACKER_SUBPROCESS_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def _write_sources(src: Path, entry_source: str) -> None:
    src.mkdir(parents=True, exist_ok=True)
    (src / "client.js").write_text(
        "export function buildClient(config) {\n"
        "  return { ping: async () => config.region };\n"
        "}\n",
        encoding="utf-8",
    )
    (src / "index.js").write_text(entry_source, encoding="utf-8")


def test_pack_and_inspect(tmp_path):
    """Test a full packaging run followed by a factory call."""
    src = tmp_path / "src"
    _write_sources(
        src,
        'import { buildClient } from "./client.js";\n'
        "export default async function factory(ctx) {\n"
        "  const client = buildClient(ctx.config);\n"
        "  return { schema: async () => ({ objectClasses: [] }), test: client.ping };\n"
        "}\n",
    )

    result = package_connector(
        PackageRequest(
            src=src,
            name="hr",
            type="hr",
            version="1.0.0",
            entry="./index.js",
            dist_dir=tmp_path / "dist",
        )
    )

    bundle_path = result.output_dir / "index.js"
    assert bundle_path.is_file()
    assert "buildClient" in bundle_path.read_text(encoding="utf-8")
    assert result.warnings == []
    assert json.loads(result.manifest_path.read_text(encoding="utf-8"))["entry"] == "./index.js"

    outcome = inspect_factory(
        bundle_path,
        config={"region": "eu"},
        instance_id="hr",
        connector_id="hr",
        connector_type="hr",
    )
    assert outcome.loaded
    assert outcome.keys == ["schema", "test"]
    assert outcome.schema_type == "function"


def test_pack_rejects_non_callable_export(tmp_path):
    """Test that a non-function default export aborts packaging."""
    src = tmp_path / "src"
    _write_sources(src, "export default { notAFactory: true };\n")

    with pytest.raises(ExportError) as exc_info:
        package_connector(
            PackageRequest(
                src=src,
                name="hr",
                type="hr",
                version="1.0.0",
                entry="./index.js",
                dist_dir=tmp_path / "dist",
            )
        )

    assert exc_info.value.kind == ExportErrorKind.MISSING_FACTORY_EXPORT
    assert not (tmp_path / "dist" / "hr" / "manifest.json").exists()


def test_pack_reports_unresolved_import(tmp_path):
    """Test that bundler diagnostics are surfaced verbatim."""
    src = tmp_path / "src"
    _write_sources(
        src,
        'import { missing } from "./missing.js";\nexport default async () => missing;\n',
    )

    with pytest.raises(BundleError) as exc_info:
        package_connector(
            PackageRequest(
                src=src,
                name="hr",
                type="hr",
                version="1.0.0",
                entry="./index.js",
                dist_dir=tmp_path / "dist",
            )
        )

    assert "missing.js" in exc_info.value.diagnostic


def test_failed_repack_leaves_no_manifest(tmp_path):
    """Test that repacking with a non-callable export removes the earlier manifest."""
    src = tmp_path / "src"
    _write_sources(src, "export default async function factory() { return {}; }\n")
    request = PackageRequest(
        src=src,
        name="hr",
        type="hr",
        version="1.0.0",
        entry="./index.js",
        dist_dir=tmp_path / "dist",
    )
    first = package_connector(request)
    assert json.loads((first.output_dir / "package.json").read_text(encoding="utf-8")) == {
        "type": "module"
    }

    (src / "index.js").write_text("export default 42;\n", encoding="utf-8")
    with pytest.raises(ExportError):
        package_connector(request.model_copy(update={"version": "2.0.0"}))

    assert not first.manifest_path.exists()
