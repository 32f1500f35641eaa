"""ContentRouter: per-item routing with keyword rules, a model and fallbacks."""

from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from content_router.adapter import ModelAdapter
from content_router.decoder import clamp_index, decode_response
from content_router.errors import ModelInvocationError, ModelUnavailable, RoutingError
from content_router.fields import resolve_content_with_source
from content_router.heuristics import direct_match, fallback_match
from content_router.models import (
    Item,
    MatchType,
    RouterConfig,
    RouterStats,
    Route,
    RoutingOutcome,
)
from content_router.prompts import build_prompt

# Payload keys added to routed items.
ROUTE_INFO_KEY = "aiRouterInfo"
ANALYSIS_KEY = "aiRouterAnalysis"
ERROR_KEY = "aiRouterError"
ITEM_ERROR_KEY = "error"


class ContentRouter:
    """Routes each item to one of N+1 outputs (Default + one per route).

    Decision order per item:
      1. No content to analyze → Default, model not consulted
      2. ``has word X`` rule in a route description → that route
      3. Model answer → decoded route index (out of range → Default)
      4. Model failed → loose keyword match on route name/description
      5. Default

    Items are processed one at a time; the model call is awaited before the
    next item starts.
    """

    def __init__(
        self,
        config: RouterConfig,
        model: Any = None,
        *,
        adapter: ModelAdapter | None = None,
    ):
        self.config = config
        self.model = model
        self._adapter = adapter or ModelAdapter()
        self.stats = RouterStats()

    @property
    def routes(self) -> tuple[Route, ...]:
        return self.config.routes

    async def route(self, items: Sequence[Item]) -> list[list[Item]]:
        """Route a batch. Returns one bucket per output, Default first.

        ``stats`` is reset at the start of each batch.

        Raises:
            RoutingError: If an item fails and ``continue_on_fail`` is off.
        """
        buckets: list[list[Item]] = [[] for _ in range(self.config.route_count + 1)]
        self.stats = RouterStats()
        self._debug(f"Content router processing {len(items)} items with {self.config.route_count} routes")

        for item_index, raw in enumerate(items):
            try:
                item = raw if isinstance(raw, Item) else Item(json=dict(raw))
                outcome, routed = await self.route_item(item, item_index)
            except Exception as e:
                self.stats.item_errors += 1
                if not self.config.continue_on_fail:
                    logger.error(f"Routing failed for item {item_index}: {e}")
                    raise RoutingError(str(e), item_index=item_index) from e
                logger.error(f"Routing failed for item {item_index}, sending to default: {e}")
                buckets[0].append(_failed_item(raw, item_index, str(e)))
                continue
            buckets[outcome.selected_index].append(routed)

        self._debug(f"Content router finished: {self.stats}")
        return buckets

    async def route_item(self, item: Item, item_index: int = 0) -> tuple[RoutingOutcome, Item]:
        """Decide the output for one item and return it with routing metadata added."""
        content, source = resolve_content_with_source(item.json, self.config.analysis_field)
        self._debug(f"Item {item_index}: content from '{source}': {content[:200]!r}")

        if not content:
            self._debug(f"Item {item_index}: no content to analyze, routing to default")
            outcome = RoutingOutcome(
                selected_index=0,
                match_type=MatchType.NONE,
                diagnostics={"matchType": MatchType.NONE.value, "routedTo": "default"},
            )
        else:
            outcome = self._direct(content, item_index) or await self._consult_model(content, item_index)

        self.stats.record(outcome)
        return outcome, self._emit(item, outcome)

    def _direct(self, content: str, item_index: int) -> RoutingOutcome | None:
        hit = direct_match(self.routes, content)
        if hit is None:
            return None
        index, keyword = hit
        route = self.routes[index - 1]
        self._debug(f"Item {item_index}: direct keyword match '{keyword}' for route {index}")
        return RoutingOutcome(
            selected_index=index,
            match_type=MatchType.DIRECT_KEYWORD,
            matched_keyword=keyword,
            diagnostics={
                "matchType": MatchType.DIRECT_KEYWORD.value,
                "matchedKeyword": keyword,
                "routeIndex": index,
                "routeName": route.name,
                "content": content,
            },
        )

    async def _consult_model(self, content: str, item_index: int) -> RoutingOutcome:
        if self.model is None:
            message = str(ModelUnavailable())
            self._debug(f"Item {item_index}: {message}, routing to default")
            return self._error_outcome(message)

        prompt = build_prompt(content, self.routes, self.config.response_format)
        self._debug(f"Item {item_index}: invoking model with prompt: {prompt}")
        self.stats.model_calls += 1
        try:
            result = await self._adapter.invoke(self.model, prompt)
        except (ModelUnavailable, ModelInvocationError) as e:
            self.stats.model_failures += 1
            logger.warning(f"Item {item_index}: model call failed, trying keyword fallback: {e}")
            return self._fallback(content, str(e), item_index)

        self._debug(f"Item {item_index}: model answered via {result.strategy}: {result.text!r}")
        decoded = decode_response(result.text, self.config.response_format)
        index = clamp_index(decoded.index, self.config.route_count)
        if index != decoded.index:
            self._debug(f"Item {item_index}: route index {decoded.index} out of range, using default")

        return RoutingOutcome(
            selected_index=index,
            match_type=MatchType.MODEL,
            reasoning=decoded.reasoning,
            diagnostics={
                "matchType": MatchType.MODEL.value,
                "prompt": prompt,
                "rawResponse": result.text,
                "strategy": result.strategy,
                "selectedRoute": self.routes[index - 1].name if index else "Default",
                "reasoning": decoded.reasoning,
            },
        )

    def _fallback(self, content: str, error: str, item_index: int) -> RoutingOutcome:
        hit = fallback_match(self.routes, content)
        if hit is None:
            return self._error_outcome(error)
        index, word = hit
        self._debug(f"Item {item_index}: fallback match '{word}' for route {index}")
        return RoutingOutcome(
            selected_index=index,
            match_type=MatchType.FALLBACK_KEYWORD,
            error=error,
            matched_keyword=word,
            diagnostics={
                "matchType": MatchType.FALLBACK_KEYWORD.value,
                "aiError": error,
                "fallbackRoute": index,
                "routeName": self.routes[index - 1].name,
            },
        )

    @staticmethod
    def _error_outcome(error: str) -> RoutingOutcome:
        return RoutingOutcome(
            selected_index=0,
            match_type=MatchType.ERROR,
            error=error,
            diagnostics={"matchType": MatchType.ERROR.value, "aiError": error, "routedTo": "default"},
        )

    def _emit(self, item: Item, outcome: RoutingOutcome) -> Item:
        """Copy of ``item`` carrying the routing annotations for ``outcome``."""
        routed = item
        if outcome.selected_index:
            # Existing route info is never overwritten.
            if ROUTE_INFO_KEY not in item.json:
                route = self.routes[outcome.selected_index - 1]
                routed = routed.with_fields(**{ROUTE_INFO_KEY: {
                    "routeName": route.name,
                    "routeIndex": outcome.selected_index,
                    "reasoning": outcome.reasoning,
                }})
        elif outcome.error:
            routed = routed.with_fields(**{ERROR_KEY: outcome.error})

        if self.config.debug_mode and outcome.diagnostics:
            routed = routed.with_fields(**{ANALYSIS_KEY: outcome.diagnostics})
        return routed

    def _debug(self, message: str) -> None:
        if self.config.debug_mode:
            logger.info(message)


def _failed_item(raw: Any, item_index: int, error: str) -> Item:
    """Default-bucket copy of an input that could not be routed."""
    if isinstance(raw, Item):
        payload, metadata = raw.json, raw.metadata
    else:
        payload, metadata = raw, {}
    data = dict(payload) if isinstance(payload, Mapping) else {}
    return Item(json={**data, ITEM_ERROR_KEY: error}, metadata=metadata, paired_item=item_index)
