"""Verification of bundled connector output.

Bundles are ES modules, so they are loaded by a short probe script run with
`node`. The probe reports the type of the primary export (`default`, falling
back to a named `factory` export) and, when asked to, calls the factory with
an instance context and reports the shape of what it returns.

Verification is advisory: only a missing or non-callable factory export is
fatal. Load-time errors are downgraded to warnings because bundles may have
environment-dependent side effects that are irrelevant to manifest
correctness.
"""

import json
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Any

from connector_packer.constants import (
    CONNECTOR_PACKER_NODE_PATH,
    DEFAULT_NODE_EXECUTABLE,
    get_subprocess_timeout,
)
from connector_packer.errors import ExportError, ExportErrorKind
from connector_packer.models import ExportProbe


logger = logging.getLogger(__name__)


NODE_PROBE_SCRIPT = """
const chunks = [];
for await (const chunk of process.stdin) chunks.push(chunk);
const request = JSON.parse(Buffer.concat(chunks).toString("utf8"));

const describe = (e) => String((e && e.stack) || e);

async function probe() {
  let mod;
  try {
    mod = await import(request.url);
  } catch (e) {
    return [{ loaded: false, diagnostic: describe(e) }, 1];
  }
  const factory = mod.default || mod.factory;
  const exportType = factory === null ? "null" : typeof factory;
  if (typeof factory !== "function") return [{ loaded: true, exportType }, 2];
  if (!request.invoke) return [{ loaded: true, exportType }, 0];
  try {
    const instance = await factory({ logger: console, ...request.context });
    return [{
      loaded: true,
      exportType,
      keys: Object.keys(instance || {}),
      schemaType: typeof (instance && instance.schema),
    }, 0];
  } catch (e) {
    return [{ loaded: true, exportType, diagnostic: describe(e) }, 3];
  }
}

const [result, code] = await probe();
process.stdout.write("\\n" + JSON.stringify(result) + "\\n", () => process.exit(code));
"""
"""ES module run by `node --input-type=module`. Reads a JSON request on stdin
and writes a JSON report as the last line of stdout."""


def resolve_node_executable() -> str | None:
    """Resolve the JavaScript runtime from the environment or PATH."""
    configured = os.environ.get(CONNECTOR_PACKER_NODE_PATH, DEFAULT_NODE_EXECUTABLE)
    return shutil.which(configured)


def _parse_probe_output(stdout: str) -> dict[str, Any] | None:
    for line in reversed(stdout.splitlines()):
        line = line.strip()
        if not line:
            continue
        try:
            report = json.loads(line)
        except json.JSONDecodeError:
            return None
        return report if isinstance(report, dict) else None
    return None


def probe_bundle(
    bundle_path: Path,
    *,
    invoke: bool = False,
    context: dict[str, Any] | None = None,
) -> ExportProbe:
    """Load a bundle with `node` and report on its factory export.

    Args:
        bundle_path: Path to the bundled module
        invoke: Whether to call the factory with `context`
        context: Instance context passed to the factory (a `logger` is added)

    Returns:
        Probe outcome. `loaded` is False when the module (or the runtime)
        could not be loaded at all; `diagnostic` then explains why.
    """
    node = resolve_node_executable()
    if node is None:
        return ExportProbe(
            loaded=False,
            diagnostic=(
                "JavaScript runtime not found; set "
                f"{CONNECTOR_PACKER_NODE_PATH} to enable bundle verification"
            ),
        )

    request = {
        "url": bundle_path.resolve().as_uri(),
        "invoke": invoke,
        "context": context or {},
    }

    try:
        completed = subprocess.run(
            [node, "--input-type=module", "-e", NODE_PROBE_SCRIPT],
            input=json.dumps(request),
            capture_output=True,
            text=True,
            check=False,
            timeout=get_subprocess_timeout(),
        )
    except subprocess.TimeoutExpired as e:
        return ExportProbe(loaded=False, diagnostic=f"Loading timed out after {e.timeout} seconds")
    except OSError as e:
        return ExportProbe(loaded=False, diagnostic=f"Failed to run {node}: {e}")

    report = _parse_probe_output(completed.stdout)
    if report is None:
        diagnostic = completed.stderr.strip() or completed.stdout.strip()
        return ExportProbe(
            loaded=False,
            diagnostic=diagnostic or f"Probe exited with code {completed.returncode}",
        )

    return ExportProbe(
        loaded=bool(report.get("loaded")),
        export_type=report.get("exportType"),
        keys=report.get("keys") or [],
        schema_type=report.get("schemaType"),
        diagnostic=report.get("diagnostic"),
    )


def verify_bundled_entry(bundle_path: Path) -> list[str]:
    """Confirm that a bundle exposes a callable factory.

    Args:
        bundle_path: Path to the bundled entry module

    Returns:
        List of non-fatal warnings

    Raises:
        ExportError: If the module loads but its factory export is absent
            or not callable
    """
    logger.info(f"Verifying bundled entry: {bundle_path}")
    probe = probe_bundle(bundle_path)

    if not probe.loaded:
        message = f"Could not load {bundle_path} for verification: {probe.diagnostic}"
        logger.warning(message)
        return [message]

    if not probe.has_factory:
        raise ExportError(
            ExportErrorKind.MISSING_FACTORY_EXPORT,
            f"{bundle_path} must export a factory function as its default export "
            f"(found {probe.export_type})",
            path=bundle_path,
        )

    logger.info("Bundled entry exposes a callable factory")
    return []


def inspect_factory(
    bundle_path: Path,
    *,
    config: dict[str, Any],
    instance_id: str,
    connector_id: str,
    connector_type: str,
) -> ExportProbe:
    """Load a bundle, call its factory and report the returned operations.

    The factory receives `{logger, config, instanceId, connectorId, type}`,
    the same context the host runtime passes.
    """
    context = {
        "config": config,
        "instanceId": instance_id,
        "connectorId": connector_id,
        "type": connector_type,
    }
    return probe_bundle(bundle_path, invoke=True, context=context)
