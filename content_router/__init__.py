"""content-router: route items to named outputs with keyword rules and an LLM."""

from content_router.adapter import CallingStrategy, ModelAdapter
from content_router.errors import (
    ConfigurationError,
    ModelInvocationError,
    ModelUnavailable,
    RouterError,
    RoutingError,
)
from content_router.models import (
    Item,
    MatchType,
    ModelCallResult,
    ResponseFormat,
    Route,
    RouterConfig,
    RouterStats,
    RoutingOutcome,
    output_names,
)
from content_router.router import ContentRouter

__all__ = [
    "CallingStrategy",
    "ConfigurationError",
    "ContentRouter",
    "Item",
    "MatchType",
    "ModelAdapter",
    "ModelCallResult",
    "ModelInvocationError",
    "ModelUnavailable",
    "ResponseFormat",
    "Route",
    "RouterConfig",
    "RouterError",
    "RouterStats",
    "RoutingError",
    "RoutingOutcome",
    "output_names",
]
