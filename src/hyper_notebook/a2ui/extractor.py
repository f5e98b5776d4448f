"""Extract A2UI component descriptors from assistant text.

The assistant is told to describe UI as JSON inside fenced code blocks.
Three block shapes are accepted:

- an array of component objects: ``[{"type": "card", ...}, ...]``
- a single component object: ``{"type": "progress", ...}``
- a wrapper object: ``{"components": [{"type": "table", ...}]}``

A component object is any JSON object whose ``type`` is a string. Blocks that
are not valid JSON (illustrative code, truncated output) are skipped without
aborting the rest of the text.
"""

import json
import logging
import math
import re
from typing import Any, Callable, Optional

from ..core import UIComponentDescriptor

logger = logging.getLogger(__name__)

FENCED_BLOCK_RE = re.compile(r"```([A-Za-z0-9_+\-]*)[ \t]*\r?\n?(.*?)```", re.DOTALL)

DEFAULT_ID_PREFIX = "parsed"

SkipHook = Callable[[int, str], None]


def extract_components(
    text: str,
    stamp: int = 0,
    prefix: str = DEFAULT_ID_PREFIX,
    on_skip: Optional[SkipHook] = None,
) -> list[UIComponentDescriptor]:
    """Return every descriptor encoded in ``text``, in block-scan order.

    Elements without an ``id`` get ``"{prefix}-{stamp}-{block}-{index}"``.
    ``stamp`` is normally the owning message's timestamp in milliseconds, so
    re-running the extractor on the same message yields the same ids.

    ``on_skip`` is called with ``(block_index, reason)`` for each fenced block
    that could not be parsed as JSON.
    """
    components: list[UIComponentDescriptor] = []

    for block_index, match in enumerate(FENCED_BLOCK_RE.finditer(text)):
        body = match.group(2).strip()
        try:
            parsed = loads_strict(body)
        except ValueError as e:
            logger.debug("Skipping fenced block %d: %s", block_index, e)
            if on_skip is not None:
                on_skip(block_index, str(e))
            continue

        for index, item in enumerate(_candidate_items(parsed)):
            descriptor = _to_descriptor(item, f"{prefix}-{stamp}-{block_index}-{index}")
            if descriptor is not None:
                components.append(descriptor)

    return components


def strip_component_blocks(text: str) -> str:
    """Return ``text`` without the fenced blocks that encode components.

    Only for display; stored message content keeps its blocks so that
    extraction can be repeated.
    """
    def _replace(match: re.Match) -> str:
        try:
            parsed = loads_strict(match.group(2).strip())
        except ValueError:
            return match.group(0)
        if any(_is_component(item) for item in _candidate_items(parsed)):
            return ""
        return match.group(0)

    cleaned = FENCED_BLOCK_RE.sub(_replace, text)
    return re.sub(r"\n{3,}", "\n\n", cleaned).strip()


def loads_strict(text: str) -> Any:
    """``json.loads`` limited to standard JSON with finite numbers.

    ``NaN``, ``Infinity`` and numbers too large for a float raise ``ValueError``.
    """
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


# ── Private helpers ──────────────────────────────────────────────


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text[:40]}")
    return value


def _candidate_items(parsed: Any) -> list:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        if isinstance(parsed.get("type"), str):
            return [parsed]
        if isinstance(parsed.get("components"), list):
            return parsed["components"]
    return []


def _is_component(item: Any) -> bool:
    return isinstance(item, dict) and isinstance(item.get("type"), str)


def _to_descriptor(item: Any, fallback_id: str) -> UIComponentDescriptor | None:
    if not _is_component(item):
        return None

    raw_id = item.get("id")
    component_id = str(raw_id) if raw_id else fallback_id

    parent_id = item.get("parentId")
    properties = item.get("properties")

    return UIComponentDescriptor(
        id=component_id,
        type=item["type"],
        parent_id=str(parent_id) if parent_id not in (None, "") else None,
        properties=properties if isinstance(properties, dict) else {},
        data=item.get("data"),
    )
