"""Shared test fixtures."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest


FACTORY_SOURCE = """import { buildClient } from "./client.js";

export default async function factory(ctx) {
  const client = buildClient(ctx.config);
  return {
    schema: async () => ({ objectClasses: [] }),
    test: async () => client.ping(),
  };
}
"""

CONFIG_SOURCE = """export default async function buildConfiguration(raw) {
  return { ...raw };
}
"""


def fake_bundle(input_path: Path, output_path: Path, options=None) -> list[Path]:
    """Stand-in for the bundler that writes a marker file instead of running esbuild."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(f"// bundled from {input_path.name}\n", encoding="utf-8")
    return [output_path]


@pytest.fixture
def connector_src(tmp_path: Path) -> Path:
    """Fixture for a connector source tree with an entry and a config module."""
    src = tmp_path / "src" / "hr"
    src.mkdir(parents=True)
    (src / "index.ts").write_text(FACTORY_SOURCE, encoding="utf-8")
    (src / "config.ts").write_text(CONFIG_SOURCE, encoding="utf-8")
    return src


@pytest.fixture
def dist_dir(tmp_path: Path) -> Path:
    """Fixture for the packaging output root."""
    return tmp_path / "dist"


@pytest.fixture
def mock_pipeline() -> Iterator[tuple[MagicMock, MagicMock]]:
    """Patch the bundler and the verifier used by the packaging pipeline."""
    with (
        patch("connector_packer.packer.bundle", side_effect=fake_bundle) as bundle_mock,
        patch("connector_packer.packer.verify_bundled_entry", return_value=[]) as verify_mock,
    ):
        yield bundle_mock, verify_mock
