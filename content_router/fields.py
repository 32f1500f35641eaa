"""Locate the text to analyze inside a shape-unknown payload."""

import json
from collections.abc import Mapping, Sequence
from typing import Any

# Top-level keys commonly holding chat/message content, in priority order.
CONTENT_FIELDS = ("chatInput", "message", "text", "content", "input")

# Keys probed inside an agent-style ``result`` object.
RESULT_FIELDS = ("output", "response", "text", "content", "message")


def resolve_path(data: Any, path: str) -> Any | None:
    """Walk a dotted path through nested mappings/sequences.

    Returns None when any segment is missing; never raises.
    """
    current = data
    for key in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, Sequence) and not isinstance(current, str) and key.isdigit():
            idx = int(key)
            current = current[idx] if idx < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def stringify(value: Any) -> str:
    """Natural string form of a payload value. Falsy values become ''."""
    if value is None or value is False:
        return ""
    if value is True:
        return "true"
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value)) if value else ""
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str) if value else ""
    if not value:
        return ""
    return str(value)


def _probe(obj: Any, keys: tuple[str, ...]) -> str:
    """First non-empty string found under ``keys`` of a mapping."""
    if isinstance(obj, str):
        return obj
    if not isinstance(obj, Mapping):
        return ""
    for key in keys:
        text = stringify(obj.get(key))
        if text:
            return text
    return ""


def resolve_content_with_source(data: Any, path: str = "") -> tuple[str, str | None]:
    """Like :func:`resolve_content`, also naming where the text came from."""
    if path:
        text = stringify(resolve_path(data, path))
        if text:
            return text, path

    if not isinstance(data, Mapping):
        return "", None

    for key in CONTENT_FIELDS:
        if data.get(key):
            text = stringify(data[key])
            if text:
                return text, key

    # Agent output shapes: plain string, or an object with a text-like key.
    for key, probes in (
        ("output", ("text", "content")),
        ("result", RESULT_FIELDS),
        ("response", ("text",)),
    ):
        text = _probe(data.get(key), probes)
        if text:
            return text, key

    return "", None


def resolve_content(data: Any, path: str = "") -> str:
    """Text to analyze for routing, or '' when nothing usable is present.

    The dotted ``path`` is tried first. When it yields nothing, common content
    fields are probed in a fixed order: chat/message style keys, then agent
    ``output``, ``result`` and ``response`` shapes. The first hit wins.
    """
    return resolve_content_with_source(data, path)[0]
