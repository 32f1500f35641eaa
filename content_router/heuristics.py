"""Keyword routing rules that run without a model.

Direct matching is an explicit override configured in a route description
(``has word "invoice"``). Fallback matching is a loose guess used only after
the model call failed.
"""

import re
from collections.abc import Sequence

from content_router.models import Route

_HAS_WORD = re.compile(r"has\s+word\s+(['\"]?)([a-z0-9_]+)\1", re.IGNORECASE | re.ASCII)

# Words too common to signal anything in a route name/description.
STOP_WORDS = frozenset({"with", "this", "that", "when", "word", "has", "the", "and", "for", "any"})

MIN_WORD_LENGTH = 4


def find_direct_keyword(description: str) -> str | None:
    """Keyword from a ``has word X`` rule in a route description, lower-cased."""
    match = _HAS_WORD.search(description or "")
    return match.group(2).lower() if match else None


def contains_word(content: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", content, re.IGNORECASE | re.ASCII) is not None


def direct_match(routes: Sequence[Route], content: str) -> tuple[int, str] | None:
    """Return (route_index, keyword) for the first route whose rule fires."""
    for index, route in enumerate(routes, start=1):
        keyword = find_direct_keyword(route.description)
        if keyword and contains_word(content, keyword):
            return index, keyword
    return None


def candidate_words(route: Route) -> list[str]:
    """Meaningful lower-cased tokens of a route's name then description."""
    tokens = route.name.lower().split() + route.description.lower().split()
    return [t for t in tokens if len(t) >= MIN_WORD_LENGTH and t not in STOP_WORDS]


def fallback_match(routes: Sequence[Route], content: str) -> tuple[int, str] | None:
    """Return (route_index, word) for the first route sharing a word with content.

    Substring test, first hit wins; there is no scoring across routes.
    """
    lowered = content.lower()
    for index, route in enumerate(routes, start=1):
        for word in candidate_words(route):
            if word in lowered:
                return index, word
    return None
