"""Command line interface for Connector Packer.

Usage:
    connector-packer pack --src ./src/hr --name hr --type hr --version 1.2.3 --entry ./index.ts
    connector-packer scaffold --name salesforce --operations CREATE,GET
    connector-packer inspect ./dist/graph/index.js --dotenv .env
    connector-packer check-manifest ./dist/hr/manifest.json

Exit codes:
    0 - success
    1 - validation, filesystem, bundling or export failure
    2 - `inspect` only: the bundle has no factory export
"""

import argparse
import logging
import sys
import traceback
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn

from dotenv import dotenv_values, load_dotenv

from connector_packer._util import (
    filter_config_secrets,
    initialize_logging,
    parse_bool,
    parse_structured_file,
    split_csv,
)
from connector_packer.constants import (
    DEFAULT_SCAFFOLD_OBJECT_CLASSES,
    DEFAULT_SCAFFOLD_OPERATIONS,
    DEFAULT_SCAFFOLD_VERSION,
    DEFAULT_SOURCE_EXTENSION,
    is_debug_enabled,
)
from connector_packer.errors import ConnectorPackerError
from connector_packer.manifest import check_manifest
from connector_packer.models import PackageRequest, ScaffoldSpec
from connector_packer.packer import package_connector
from connector_packer.scaffold import generate_scaffold, render_next_steps
from connector_packer.verifier import inspect_factory


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_FACTORY_NOT_FOUND = 2


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with the failure exit code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"Error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    common = _ArgumentParser(add_help=False)
    common.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level and print full tracebacks on failure.",
    )

    parser = _ArgumentParser(
        prog="connector-packer",
        description="Package connector plugins and scaffold new connectors.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    pack = subparsers.add_parser(
        "pack",
        parents=[common],
        help="Bundle a connector and write its manifest.",
    )
    pack.add_argument("--src", required=True, help="Connector source root.")
    pack.add_argument("--name", required=True, help="Connector name.")
    pack.add_argument("--type", required=True, help="Connector type.")
    pack.add_argument("--version", required=True, help="Connector semantic version.")
    pack.add_argument("--entry", required=True, help="Entry module, relative to --src.")
    pack.add_argument("--config", help="Config module, relative to --src.")
    pack.add_argument(
        "--instances",
        help="JSON (or YAML) file with an array of instances or {instances: [...]}.",
    )
    pack.add_argument(
        "--minify",
        nargs="?",
        const=True,
        default=False,
        type=parse_bool,
        help="Minify the bundles (true|false, default: false).",
    )
    pack.add_argument(
        "--dist",
        help="Output root (default: $CONNECTOR_PACKER_DIST_DIR or ./dist).",
    )
    pack.add_argument(
        "--skip-verify",
        action="store_true",
        help="Do not load the bundle to check its factory export.",
    )
    pack.set_defaults(handler=_run_pack)

    scaffold = subparsers.add_parser(
        "scaffold",
        parents=[common],
        help="Generate a new connector source tree.",
    )
    scaffold.add_argument("--name", help="Connector name (e.g., salesforce).")
    scaffold.add_argument("--version", help=f"Version (default: {DEFAULT_SCAFFOLD_VERSION}).")
    scaffold.add_argument("--type", help="Connector type (default: the name).")
    scaffold.add_argument("--directory", help="Target directory (default: ./src/<name>-<version>).")
    scaffold.add_argument(
        "--operations",
        help=f"Comma-separated operations (default: {','.join(DEFAULT_SCAFFOLD_OPERATIONS)}).",
    )
    scaffold.add_argument(
        "--object-classes",
        help=(
            "Comma-separated object classes "
            f"(default: {','.join(DEFAULT_SCAFFOLD_OBJECT_CLASSES)})."
        ),
    )
    scaffold.add_argument(
        "--source-extension",
        default=DEFAULT_SOURCE_EXTENSION,
        help=f"Extension of generated sources (default: {DEFAULT_SOURCE_EXTENSION}).",
    )
    scaffold.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt; use defaults for anything not given on the command line.",
    )
    scaffold.set_defaults(handler=_run_scaffold)

    inspect = subparsers.add_parser(
        "inspect",
        parents=[common],
        help="Load a bundle, call its factory and report what it returns.",
    )
    inspect.add_argument("bundle", help="Path to a bundled index.js.")
    inspect.add_argument("--config-json", help="JSON (or YAML) file with the instance config.")
    inspect.add_argument("--dotenv", help="Path to a .env file merged into the instance config.")
    inspect.add_argument("--instance-id", help="Instance id (default: bundle directory name).")
    inspect.add_argument("--connector-id", help="Connector id (default: bundle directory name).")
    inspect.add_argument("--type", help="Connector type (default: bundle directory name).")
    inspect.set_defaults(handler=_run_inspect)

    check = subparsers.add_parser(
        "check-manifest",
        parents=[common],
        help="Check a manifest.json against the manifest schema.",
    )
    check.add_argument("manifest", help="Path to manifest.json.")
    check.set_defaults(handler=_run_check_manifest)

    return parser


def _run_pack(args: argparse.Namespace) -> int:
    request = PackageRequest(
        src=Path(args.src),
        name=args.name,
        type=args.type,
        version=args.version,
        entry=args.entry,
        config=args.config,
        instances=Path(args.instances) if args.instances else None,
        minify=args.minify,
        dist_dir=Path(args.dist) if args.dist else None,
        verify=not args.skip_verify,
    )

    print(f"\n🔧 Packing connector '{request.name}' (type='{request.type}')")
    result = package_connector(request)

    dist_dir = result.output_dir.parent
    for artifact in result.artifacts:
        if artifact.suffix != ".map":
            print(f"  • built ./{artifact.relative_to(dist_dir).as_posix()}")
    print(f"  • wrote ./{result.manifest_path.relative_to(dist_dir).as_posix()}")
    for warning in result.warnings:
        print(f"  ⚠ {warning}")

    print(f"\n✔ Connector '{result.identity.name}' ready at {result.output_dir}")
    print(f"Next: start the service with --connectors {dist_dir}\n")
    return EXIT_OK


def _prompt(question: str, input_func: Callable[[str], str]) -> str:
    return input_func(question).strip()


def collect_scaffold_spec(
    args: argparse.Namespace,
    *,
    interactive: bool,
    input_func: Callable[[str], str] = input,
) -> ScaffoldSpec:
    """Build a scaffold spec from flags, prompting for anything missing.

    Raises:
        ValueError: If no connector name is available
    """
    name = args.name
    if not name and interactive:
        name = _prompt("Connector name (e.g., salesforce): ", input_func)
    if not name or not name.strip():
        raise ValueError("Connector name is required")
    name = name.strip()

    version = args.version
    if version is None and interactive:
        version = _prompt(f"Version (default: {DEFAULT_SCAFFOLD_VERSION}): ", input_func)
    version = version or DEFAULT_SCAFFOLD_VERSION

    connector_type = args.type
    if connector_type is None and interactive:
        connector_type = _prompt(f"Connector type (default: {name}): ", input_func)
    connector_type = connector_type or name

    default_directory = f"./src/{name}-{version}"
    directory = args.directory
    if directory is None and interactive:
        directory = _prompt(f"Directory (default: {default_directory}): ", input_func)
    directory = directory or default_directory

    def _collect_list(value: str | None, question: str, default: tuple[str, ...]) -> list[str]:
        if value is None and interactive:
            value = _prompt(
                f"{question} (comma-separated, default: {','.join(default)}): ", input_func
            )
        return split_csv(value) if value else list(default)

    operations = _collect_list(
        args.operations, "Supported operations", DEFAULT_SCAFFOLD_OPERATIONS
    )
    object_classes = _collect_list(
        args.object_classes, "Object classes", DEFAULT_SCAFFOLD_OBJECT_CLASSES
    )

    return ScaffoldSpec(
        name=name,
        version=version,
        type=connector_type,
        directory=Path(directory),
        operations=operations,
        object_classes=object_classes,
        source_extension=args.source_extension,
    )


def _run_scaffold(args: argparse.Namespace) -> int:
    interactive = not args.no_input and sys.stdin.isatty()
    if interactive:
        print("=== Connector Scaffold Generator ===\n")
    spec = collect_scaffold_spec(args, interactive=interactive)

    print("\n=== Generating connector scaffold ===\n")
    result = generate_scaffold(spec)
    for path in result.files:
        print(f"✓ Created {path}")
    for warning in result.warnings:
        print(f"⚠ {warning}")

    print("\n=== Scaffold complete ===")
    print(f"\nConnector directory: {result.directory}")
    print("\nNext steps:")
    for number, step in enumerate(render_next_steps(result, spec), start=1):
        print(f"{number}. {step}")
    print()
    return EXIT_OK


def _load_inspect_config(args: argparse.Namespace) -> dict[str, Any]:
    config: dict[str, Any] = {}
    if args.config_json:
        loaded = parse_structured_file(Path(args.config_json))
        if not isinstance(loaded, dict):
            raise ValueError(f"{args.config_json} must contain an object")
        config.update(loaded)
    if args.dotenv:
        dotenv_path = Path(args.dotenv)
        if not dotenv_path.is_file():
            raise FileNotFoundError(f"dotenv file not found: {dotenv_path}")
        config.update(
            {key: value.strip() for key, value in dotenv_values(dotenv_path).items() if value}
        )
    return config


def _run_inspect(args: argparse.Namespace) -> int:
    bundle_path = Path(args.bundle)
    if not bundle_path.is_file():
        raise FileNotFoundError(f"bundle not found: {bundle_path}")

    default_id = bundle_path.resolve().parent.name
    config = _load_inspect_config(args)
    logger.info(f"Inspecting {bundle_path} with config: {filter_config_secrets(config)}")

    probe = inspect_factory(
        bundle_path,
        config=config,
        instance_id=args.instance_id or default_id,
        connector_id=args.connector_id or default_id,
        connector_type=args.type or default_id,
    )

    if not probe.loaded:
        print(f"Import failed: {probe.diagnostic}", file=sys.stderr)
        return EXIT_FAILURE
    if not probe.has_factory:
        print(f"No default export from {bundle_path}", file=sys.stderr)
        return EXIT_FACTORY_NOT_FOUND
    if probe.diagnostic:
        print(f"Factory call failed: {probe.diagnostic}", file=sys.stderr)
        return EXIT_FAILURE

    print(f"Factory returned keys: {probe.keys}")
    print(f"Has schema: {probe.schema_type}")
    return EXIT_OK


def _run_check_manifest(args: argparse.Namespace) -> int:
    result = check_manifest(Path(args.manifest))
    for error in result.errors:
        print(f"❌ {error}")
    for warning in result.warnings:
        print(f"⚠ {warning}")
    if result.is_valid:
        print(f"✔ {args.manifest} is a valid connector manifest")
        return EXIT_OK
    return EXIT_FAILURE


def run(argv: list[str] | None = None) -> int:
    """Parse arguments, run the selected command and return its exit code."""
    load_dotenv()
    try:
        args = _build_parser().parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_FAILURE
    debug = args.debug or is_debug_enabled()
    initialize_logging(debug=debug)

    try:
        return args.handler(args)
    except (ConnectorPackerError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if debug:
            traceback.print_exc()
        return EXIT_FAILURE


def main() -> None:
    """Main entry point for the `connector-packer` command."""
    sys.exit(run())


if __name__ == "__main__":
    main()
