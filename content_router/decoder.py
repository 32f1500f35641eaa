"""Turn model text into a route index."""

import json
import re
from typing import Any

from loguru import logger

from content_router.models import DecodedResponse, ResponseFormat

_DIGITS = re.compile(r"\d+", re.ASCII)
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def first_number(text: str) -> int:
    """First run of ASCII digits in ``text``, or 0.

    Runs too long to convert are no valid route either and also give 0.
    """
    match = _DIGITS.search(text)
    if not match:
        return 0
    try:
        return int(match.group())
    except ValueError:
        return 0


def _load_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Parse the whole text as a JSON object, else the outermost {...} span."""
    parsed = _load_object(text.strip())
    if parsed is None:
        match = _JSON_OBJECT.search(text)
        if match:
            parsed = _load_object(match.group())
    return parsed


def _route_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def decode_response(text: str, response_format: ResponseFormat | str = ResponseFormat.INDEX) -> DecodedResponse:
    """Extract the route index (and reasoning in structured mode).

    Index mode takes the first number in the text. Structured mode expects
    ``{"routeIndex": n, "reasoning": "..."}``, possibly surrounded by prose;
    when no JSON object can be parsed at all it degrades to index mode.
    The result is not range-checked; see :func:`clamp_index`.
    """
    text = text or ""
    if ResponseFormat(response_format) is ResponseFormat.INDEX:
        return DecodedResponse(index=first_number(text))

    parsed = parse_json_object(text)
    if parsed is None:
        logger.debug(f"Structured response unparseable, using first number: {text[:200]!r}")
        return DecodedResponse(index=first_number(text), parsed=False)

    index = _route_index(parsed.get("routeIndex"))
    if index is None:
        return DecodedResponse()
    reasoning = parsed.get("reasoning") or ""
    return DecodedResponse(index=index, reasoning=reasoning if isinstance(reasoning, str) else str(reasoning))


def clamp_index(index: int, route_count: int) -> int:
    """Out-of-range indices fall back to the Default route (0)."""
    if index < 0 or index > route_count:
        return 0
    return index
