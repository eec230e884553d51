"""
Response extraction: turn whatever the upstream agent returned into plain answer text.

Responsibility: Probe the known result shapes in a fixed priority order and return
the first non-empty text; fall back to a bounded JSON dump. Never raises.
Works on dicts (parsed JSON) and SDK objects (attribute access) alike.
"""

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from agent_relay.core.config import MAX_DUMP_CHARS

logger = logging.getLogger(__name__)

# How deep a nested final/current-output object is followed
_MAX_NESTING = 2

_MISSING = object()


def _field(obj: Any, name: str) -> Any:
    """Read a field from a mapping or an object; None when absent."""
    if obj is None or isinstance(obj, str):
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    value = getattr(obj, name, _MISSING)
    return None if value is _MISSING else value


def _has_field(obj: Any, name: str) -> bool:
    if isinstance(obj, Mapping):
        return name in obj
    return obj is not None and not isinstance(obj, str) and hasattr(obj, name)


def _scalar(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _block_text(block: Any) -> str:
    if isinstance(block, str):
        return block.strip()
    return _scalar(_field(block, "text")) or _scalar(_field(block, "output_text"))


def _join_blocks(blocks: list[Any]) -> str:
    """Text of each block, empties dropped, joined by a blank line."""
    texts = [t for t in (_block_text(b) for b in blocks) if t]
    return "\n\n".join(texts).strip()


def _content_blocks(item: Any) -> list[Any]:
    content = _field(item, "content")
    if isinstance(content, str):
        return [content]
    return _as_list(content)


# --- probes: each returns text or "" ---

def _probe_output_text(result: Any, depth: int) -> str:
    return _scalar(_field(result, "output_text"))


def _probe_final_output(result: Any, depth: int) -> str:
    return _scalar(_field(result, "finalOutput")) or _scalar(_field(result, "final_output"))


def _probe_content(result: Any, depth: int) -> str:
    return _join_blocks(_content_blocks(result))


def _probe_nested_state(result: Any, depth: int) -> str:
    """Look under `state` (or the result itself): finalOutput, newItems, modelResponses."""
    state = _field(result, "state") if _has_field(result, "state") else result
    if state is None:
        return ""

    text = _scalar(_field(state, "finalOutput"))
    if text:
        return text

    blocks: list[Any] = []
    for item in _as_list(_field(state, "newItems")):
        item_blocks = _content_blocks(item)
        if not item_blocks:
            item_blocks = _content_blocks(_field(item, "rawItem"))
        blocks.extend(item_blocks)
    text = _join_blocks(blocks)
    if text:
        return text

    blocks = []
    for response in _as_list(_field(state, "modelResponses")):
        blocks.extend(_content_blocks(response))
        for out in _as_list(_field(response, "output")):
            blocks.extend(_content_blocks(out))
    return _join_blocks(blocks)


def _probe_nested_output(result: Any, depth: int) -> str:
    """A final/current output that is itself an object: run the chain on it."""
    if depth >= _MAX_NESTING:
        return ""
    state = _field(result, "state")
    for holder in (result, state):
        for name in ("finalOutput", "final_output", "currentOutput"):
            nested = _field(holder, name)
            if nested is None or isinstance(nested, (str, int, float, bool)):
                continue
            text = _run_probes(nested, depth + 1)
            if text:
                return text
    return ""


PROBES: list[Callable[[Any, int], str]] = [
    _probe_output_text,
    _probe_final_output,
    _probe_content,
    _probe_nested_state,
    _probe_nested_output,
]


def _run_probes(result: Any, depth: int = 0) -> str:
    for probe in PROBES:
        try:
            text = probe(result, depth)
        except Exception as e:
            # Properties on SDK objects may raise; treat as "shape not present"
            logger.debug("[extractor] probe %s failed: %s", probe.__name__, e)
            continue
        if text:
            return text
    return ""


def _to_plain(result: Any) -> Any:
    dump = getattr(result, "model_dump", None)
    if callable(dump):
        return dump()
    return result


def _dump_fallback(result: Any, limit: int = MAX_DUMP_CHARS) -> str:
    """Pretty JSON of the whole result, cut to `limit` chars; str() if it won't serialize."""
    try:
        text = json.dumps(_to_plain(result), indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        try:
            text = str(result)
        except Exception:
            text = repr(type(result))
    return text[:limit]


def _looks_like_envelope(text: str) -> bool:
    """Serialized run state, e.g. '{"state": {...}}'."""
    return text.startswith("{") and '"state"' in text


def extract_text(result: Any) -> str:
    """
    Best human-readable answer from an upstream result.

    Order: output_text, finalOutput, top-level content blocks, state (finalOutput,
    newItems, modelResponses), nested output objects, then a JSON dump of at most
    MAX_DUMP_CHARS characters. Returns "" only for empty input.
    """
    if not result:
        return ""

    if isinstance(result, str):
        stripped = result.strip()
        if not _looks_like_envelope(stripped):
            return stripped
        try:
            result = json.loads(stripped)
        except (ValueError, RecursionError):
            return stripped
        if not result:
            return stripped

    text = _run_probes(result)
    if text:
        return text

    logger.info("[extractor] no known shape matched; returning JSON dump (type=%s)", type(result).__name__)
    return _dump_fallback(result)
