"""MCP server exposing the packaging and scaffolding pipelines as tools.

Tools never raise: failures are reported as `ERROR: ...` strings so the
calling agent can read and act on them.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated

from fastmcp import FastMCP
from pydantic import Field

from connector_packer._util import initialize_logging
from connector_packer.constants import (
    DEFAULT_SCAFFOLD_OBJECT_CLASSES,
    DEFAULT_SCAFFOLD_OPERATIONS,
    DEFAULT_SCAFFOLD_VERSION,
)
from connector_packer.errors import ConnectorPackerError
from connector_packer.manifest import check_manifest
from connector_packer.models import ManifestCheckResult, PackageRequest, ScaffoldSpec
from connector_packer.packer import package_connector
from connector_packer.scaffold import generate_scaffold, render_next_steps


MCP_SERVER_NAME = "connector-packer-mcp"

logger = logging.getLogger(__name__)


def package_connector_tool(
    *,
    src: Annotated[str, Field(description="Connector source root directory")],
    name: Annotated[str, Field(description="Connector name (letters, digits, '_' or '-')")],
    connector_type: Annotated[str, Field(description="Connector type")],
    version: Annotated[str, Field(description="Connector semantic version, e.g. 1.2.3")],
    entry: Annotated[str, Field(description="Entry module path, relative to src")],
    config: Annotated[
        str | None, Field(description="Optional config module path, relative to src")
    ] = None,
    instances: Annotated[
        str | None,
        Field(description="Optional path to a JSON file with the instances to activate"),
    ] = None,
    minify: Annotated[bool, Field(description="Whether to minify the bundles")] = False,
    dist_dir: Annotated[
        str | None, Field(description="Output root (defaults to ./dist)")
    ] = None,
) -> str:
    """Bundle a connector and write its manifest to `<dist>/<name>/manifest.json`."""
    logger.info(f"Packaging connector {name}")
    try:
        result = package_connector(
            PackageRequest(
                src=Path(src),
                name=name,
                type=connector_type,
                version=version,
                entry=entry,
                config=config,
                instances=Path(instances) if instances else None,
                minify=minify,
                dist_dir=Path(dist_dir) if dist_dir else None,
            )
        )
    except (ConnectorPackerError, OSError, ValueError) as e:
        logger.error(f"Packaging {name} failed: {e}")
        return f"ERROR: {e}"

    lines = [f"Connector '{result.identity.name}' ready at {result.output_dir}"]
    lines += [f"Warning: {warning}" for warning in result.warnings]
    return "\n".join(lines)


def create_connector_scaffold(
    *,
    name: Annotated[str, Field(description="Connector name (e.g., salesforce)")],
    version: Annotated[str, Field(description="Connector version")] = DEFAULT_SCAFFOLD_VERSION,
    connector_type: Annotated[
        str | None, Field(description="Connector type (defaults to the name)")
    ] = None,
    directory: Annotated[
        str | None, Field(description="Target directory (defaults to ./src/<name>-<version>)")
    ] = None,
    operations: Annotated[
        list[str], Field(description="Operations to generate, e.g. CREATE, GET, SEARCH")
    ] = list(DEFAULT_SCAFFOLD_OPERATIONS),
    object_classes: Annotated[
        list[str], Field(description="Object classes the connector handles")
    ] = list(DEFAULT_SCAFFOLD_OBJECT_CLASSES),
) -> str:
    """Generate a new connector source tree from the scaffold templates."""
    logger.info(f"Creating connector scaffold for {name}")
    try:
        spec = ScaffoldSpec(
            name=name,
            version=version,
            type=connector_type,
            directory=Path(directory) if directory else None,
            operations=list(operations),
            object_classes=list(object_classes),
        )
        result = generate_scaffold(spec)
    except (ConnectorPackerError, OSError, ValueError) as e:
        logger.error(f"Scaffolding {name} failed: {e}")
        return f"ERROR: {e}"

    lines = [f"Created {path}" for path in result.files]
    lines += [f"Warning: {warning}" for warning in result.warnings]
    lines += ["Next steps:", *render_next_steps(result, spec)]
    return "\n".join(lines)


def check_connector_manifest(
    manifest_path: Annotated[str, Field(description="Path to a connector manifest.json")],
) -> ManifestCheckResult:
    """Check a connector manifest against the manifest schema."""
    return check_manifest(Path(manifest_path))


def register_tools(app: FastMCP) -> None:
    """Register the connector packer tools with the FastMCP app.

    Args:
        app: FastMCP application instance
    """
    app.tool(
        package_connector_tool,
        name="package_connector",
        annotations={"readOnlyHint": False, "destructiveHint": True, "idempotentHint": True},
    )
    app.tool(
        create_connector_scaffold,
        annotations={"readOnlyHint": False, "destructiveHint": True, "idempotentHint": False},
    )
    app.tool(
        check_connector_manifest,
        annotations={"readOnlyHint": True, "destructiveHint": False, "idempotentHint": True},
    )


initialize_logging()

app: FastMCP = FastMCP(MCP_SERVER_NAME)
register_tools(app)


def main() -> None:
    """Main entry point for the Connector Packer MCP server."""
    print("Starting Connector Packer MCP server.", file=sys.stderr)
    try:
        asyncio.run(app.run_stdio_async(show_banner=False))
    except KeyboardInterrupt:
        print("Connector Packer MCP server interrupted by user.", file=sys.stderr)
    except Exception as ex:
        print(f"Error running Connector Packer MCP server: {ex}", file=sys.stderr)
        sys.exit(1)

    print("Connector Packer MCP server stopped.", file=sys.stderr)


if __name__ == "__main__":
    main()
