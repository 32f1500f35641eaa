"""Core data models for content-router."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from content_router.errors import ConfigurationError


class MatchType(str, Enum):
    """How a routing decision was reached."""

    DIRECT_KEYWORD = "direct_keyword"
    MODEL = "model"
    FALLBACK_KEYWORD = "fallback_keyword"
    ERROR = "error"
    NONE = "none"


class ResponseFormat(str, Enum):
    """What the model is asked to answer with."""

    INDEX = "index"            # bare route number
    STRUCTURED = "structured"  # {"routeIndex": n, "reasoning": "..."}


@dataclass(frozen=True)
class Route:
    """A named destination. Position in the route list is its 1-based index."""

    name: str
    description: str


@dataclass(frozen=True)
class Item:
    """A record flowing through the router.

    ``json`` is the payload tree, ``metadata`` is carried through untouched
    (binary attachments and the like).
    """

    json: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)
    paired_item: int | None = None

    def with_fields(self, **fields: Any) -> "Item":
        """Return a copy whose payload carries the extra top-level fields."""
        return replace(self, json={**self.json, **fields})


@dataclass
class RoutingOutcome:
    """Result of routing a single record."""

    selected_index: int
    match_type: MatchType
    reasoning: str = ""
    error: str | None = None
    matched_keyword: str | None = None
    diagnostics: dict[str, Any] | None = None

    @property
    def is_default(self) -> bool:
        return self.selected_index == 0


@dataclass
class ModelCallResult:
    """Normalized response from a model capability."""

    text: str
    strategy: str  # name of the calling convention that answered
    raw: Any = None


@dataclass
class DecodedResponse:
    """Route index (and reasoning) parsed out of model text."""

    index: int = 0
    reasoning: str = ""
    parsed: bool = True  # False when structured output fell back to digits


@dataclass
class RouterStats:
    """Aggregate counters for the most recent routing run.

    ``ContentRouter.route`` starts a fresh instance per batch.
    """

    items: int = 0
    direct_matches: int = 0
    model_matches: int = 0
    fallback_matches: int = 0
    defaults: int = 0
    model_calls: int = 0
    model_failures: int = 0
    item_errors: int = 0

    def record(self, outcome: RoutingOutcome) -> None:
        self.items += 1
        if outcome.match_type is MatchType.DIRECT_KEYWORD:
            self.direct_matches += 1
        elif outcome.match_type is MatchType.MODEL and not outcome.is_default:
            self.model_matches += 1
        elif outcome.match_type is MatchType.FALLBACK_KEYWORD:
            self.fallback_matches += 1
        if outcome.is_default:
            self.defaults += 1


@dataclass
class RouterConfig:
    """Routing configuration, loaded once per run."""

    routes: tuple[Route, ...] = ()
    analysis_field: str = ""
    response_format: ResponseFormat = ResponseFormat.INDEX
    debug_mode: bool = False
    continue_on_fail: bool = False

    def __post_init__(self) -> None:
        self.routes = tuple(_coerce_route(r, i) for i, r in enumerate(self.routes, start=1))
        try:
            self.response_format = ResponseFormat(self.response_format)
        except ValueError:
            raise ConfigurationError(
                f"Unknown response format '{self.response_format}'. "
                f"Expected one of: {', '.join(f.value for f in ResponseFormat)}"
            ) from None
        self.analysis_field = (self.analysis_field or "").strip()

    @property
    def route_count(self) -> int:
        return len(self.routes)

    @classmethod
    def from_parameters(cls, params: Mapping[str, Any]) -> "RouterConfig":
        """Build a config from host parameters.

        Accepts both the node parameter shape (``routes.values``, camelCase
        keys) and plain snake_case keys with a list of routes.
        """
        routes = params.get("routes") or []
        if isinstance(routes, Mapping):
            routes = routes.get("values") or []

        def pick(camel: str, snake: str, default: Any) -> Any:
            if camel in params:
                return params[camel]
            return params.get(snake, default)

        return cls(
            routes=tuple(routes),
            analysis_field=pick("analysisField", "analysis_field", ""),
            response_format=pick("responseFormat", "response_format", ResponseFormat.INDEX),
            debug_mode=_as_bool(pick("debugMode", "debug_mode", False)),
            continue_on_fail=_as_bool(pick("continueOnFail", "continue_on_fail", False)),
        )


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def _as_bool(value: Any) -> bool:
    """Flag value from host parameters, which may arrive as text."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ConfigurationError(f"Expected a boolean, got '{value}'")
    return bool(value)


def _coerce_route(raw: Any, position: int) -> Route:
    if isinstance(raw, Route):
        route = raw
    elif isinstance(raw, Mapping):
        if raw.get("description") is None:
            raise ConfigurationError(f"Route {position} is missing a description")
        route = Route(name=str(raw.get("name") or ""), description=str(raw["description"]))
    else:
        raise ConfigurationError(f"Route {position} must be a mapping, got {type(raw).__name__}")

    if not route.name.strip():
        raise ConfigurationError(f"Route {position} has no name")
    return route


def output_names(routes: Any) -> list[str]:
    """Display names of the router outputs: Default first, then one per route.

    Works on raw parameter dicts too, since hosts ask for output names before
    the configuration is validated.
    """
    names = ["Default"]
    for route in routes or ():
        name = route.get("name") if isinstance(route, Mapping) else route.name
        names.append(name or f"Route {len(names)}")
    return names
