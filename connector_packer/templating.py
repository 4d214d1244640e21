"""A minimal template language for generated connector source code.

Two rules only:

- `{{key}}` is replaced by the string value bound to `key`.
- `{{#key}}...{{/key}}` is replaced by the inner template rendered once per
  item of the list bound to `key`, concatenated. Inside the block, the
  item's fields are available next to the outer context. A non-mapping item
  is bound to `.`.

Templates are scanned once: text produced by a block is never scanned again
by the enclosing template. There are no conditionals, partials or escaping.
"""

import logging
import os
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from connector_packer.constants import CONNECTOR_PACKER_TEMPLATES_DIR, TEMPLATES_DIR
from connector_packer.errors import TemplateError


logger = logging.getLogger(__name__)

TemplateContext = Mapping[str, Any]

_KEY = r"[\w.-]+"

_TAG_PATTERN = re.compile(
    r"\{\{#\s*(?P<block>" + _KEY + r")\s*\}\}(?P<inner>.*?)\{\{/\s*(?P=block)\s*\}\}"
    r"|\{\{\s*(?P<key>" + _KEY + r")\s*\}\}",
    re.DOTALL,
)

_BLOCK_TAG_PATTERN = re.compile(r"\{\{[#/]\s*" + _KEY + r"\s*\}\}")


def _is_list(value: Any) -> bool:  # noqa: ANN401
    return isinstance(value, Sequence) and not isinstance(value, str | bytes)


def _item_scope(context: TemplateContext, item: Any) -> dict[str, Any]:  # noqa: ANN401
    if isinstance(item, Mapping):
        return {**context, **item}
    return {**context, ".": item}


def find_unmatched_block_tags(template: str) -> list[str]:
    """List block open/close tags that have no matching partner."""
    tags: list[str] = []
    for match in _TAG_PATTERN.finditer(template):
        if match.group("block") is not None:
            tags.extend(find_unmatched_block_tags(match.group("inner")))
    leftover = _TAG_PATTERN.sub("", template)
    tags.extend(match.group(0) for match in _BLOCK_TAG_PATTERN.finditer(leftover))
    return tags


def render(template: str, context: TemplateContext, *, strict: bool = False) -> str:
    """Render a template against a context.

    Args:
        template: Template text
        context: Values for `{{key}}` placeholders and lists for `{{#key}}` blocks
        strict: If True, raise instead of leaving unbound placeholders or
            unmatched block tags untouched

    Returns:
        The rendered text

    Raises:
        TemplateError: If a block key is bound to something other than a list,
            if an interpolation key is bound to a list, or (in strict mode) if
            any placeholder is unbound or any block tag has no matching partner
    """
    if strict:
        unmatched = find_unmatched_block_tags(template)
        if unmatched:
            raise TemplateError(f"Unmatched template block tags: {', '.join(unmatched)}")

    unbound: list[str] = []

    def substitute(match: re.Match[str]) -> str:
        block_key = match.group("block")
        if block_key is not None:
            if block_key not in context:
                unbound.append(block_key)
                return match.group(0)
            items = context[block_key]
            if not _is_list(items):
                raise TemplateError(
                    f"Block '{block_key}' must be bound to a list, got {type(items).__name__}"
                )
            inner = match.group("inner")
            return "".join(
                render(inner, _item_scope(context, item), strict=strict) for item in items
            )

        key = match.group("key")
        if key not in context:
            unbound.append(key)
            return match.group(0)
        value = context[key]
        if _is_list(value):
            raise TemplateError(f"Placeholder '{key}' is bound to a list; use a block instead")
        return "" if value is None else str(value)

    result = _TAG_PATTERN.sub(substitute, template)

    if unbound:
        if strict:
            raise TemplateError(f"Unbound template placeholders: {', '.join(unbound)}")
        logger.debug(f"Leaving unbound template placeholders untouched: {unbound}")

    return result


def find_placeholders(template: str) -> list[str]:
    """List the keys a template references, in order of first appearance."""
    keys: list[str] = []
    for match in _TAG_PATTERN.finditer(template):
        block_key = match.group("block")
        if block_key is None:
            found = [match.group("key")]
        else:
            found = [block_key, *find_placeholders(match.group("inner"))]
        for key in found:
            if key not in keys:
                keys.append(key)
    return keys


def get_templates_dir(templates_dir: Path | None = None) -> Path:
    """Resolve the template directory (argument, environment, then package)."""
    if templates_dir is not None:
        return templates_dir
    env_value = os.environ.get(CONNECTOR_PACKER_TEMPLATES_DIR)
    if env_value:
        return Path(env_value).expanduser()
    return TEMPLATES_DIR


def load_template(name: str, templates_dir: Path | None = None) -> str:
    """Read a template by file name.

    Raises:
        FileNotFoundError: If the template does not exist
    """
    path = get_templates_dir(templates_dir) / name
    return path.read_text(encoding="utf-8")
