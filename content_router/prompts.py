"""Prompt text sent to the routing model."""

from collections.abc import Sequence

from content_router.models import ResponseFormat, Route

_PREAMBLE = (
    "You are a content router that analyzes text and routes it to the most "
    "appropriate destination.\n\n"
)

_INSTRUCTIONS = {
    ResponseFormat.INDEX: "Respond with ONLY the number of the most appropriate route, or 0 if none apply.",
    ResponseFormat.STRUCTURED: (
        'Respond with a JSON object containing: { "routeIndex": (number), "reasoning": "explanation" }'
    ),
}


def build_prompt(
    content: str,
    routes: Sequence[Route],
    response_format: ResponseFormat = ResponseFormat.INDEX,
) -> str:
    lines = [f'Content to analyze: "{content}"', "", "Available routes:"]
    lines += [f"{i}. {route.name}: {route.description}" for i, route in enumerate(routes, start=1)]
    lines += ["", _INSTRUCTIONS[ResponseFormat(response_format)]]
    return _PREAMBLE + "\n".join(lines)
