"""Tests for ContentRouter end-to-end routing."""

import pytest

from content_router import (
    ContentRouter,
    Item,
    MatchType,
    ModelAdapter,
    ResponseFormat,
    Route,
    RouterConfig,
    RoutingError,
)
from content_router.prompts import build_prompt
from content_router.router import ANALYSIS_KEY, ERROR_KEY, ROUTE_INFO_KEY


class RecordingModel:
    """Answers every prompt with a fixed string and remembers the prompts."""

    def __init__(self, answer: str = "0"):
        self.answer = answer
        self.prompts: list[str] = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        return self.answer


class BrokenModel:
    def generate(self, prompt):
        raise RuntimeError("model down")


class ExplodingAdapter(ModelAdapter):
    async def invoke(self, model, prompt):
        raise ValueError("boom")


def make_router(routes, model=None, **config) -> ContentRouter:
    config.setdefault("analysis_field", "message")
    return ContentRouter(
        RouterConfig(routes=tuple(Route(name, desc) for name, desc in routes), **config),
        model,
    )


SALES = [("Sales", "talks about pricing")]
THREE_ROUTES = [("Billing", "invoices"), ("Support", "help"), ("Sales", "pricing")]


@pytest.mark.asyncio
async def test_direct_keyword_skips_model():
    model = RecordingModel("0")
    router = make_router([("Billing", "has word 'invoice'")], model)
    item = Item(json={"message": "please send the invoice"})

    outcome, routed = await router.route_item(item)

    assert outcome.selected_index == 1
    assert outcome.match_type is MatchType.DIRECT_KEYWORD
    assert outcome.matched_keyword == "invoice"
    assert model.prompts == []
    assert routed.json[ROUTE_INFO_KEY] == {"routeName": "Billing", "routeIndex": 1, "reasoning": ""}


@pytest.mark.asyncio
async def test_direct_keyword_without_model():
    router = make_router([("Other", "misc"), ("Billing", 'has word "invoice"')])
    buckets = await router.route([Item(json={"message": "Invoice #42"})])
    assert [len(b) for b in buckets] == [0, 0, 1]


@pytest.mark.asyncio
async def test_missing_model_routes_to_default():
    router = make_router(SALES)
    outcome, routed = await router.route_item(Item(json={"message": "what is the price"}))

    assert outcome.selected_index == 0
    assert outcome.match_type is MatchType.ERROR
    assert routed.json[ERROR_KEY] == "No AI language model connected"
    assert ROUTE_INFO_KEY not in routed.json
    assert router.stats.model_calls == 0


@pytest.mark.asyncio
async def test_model_failure_uses_fallback_keywords():
    router = make_router(SALES, BrokenModel())
    outcome, routed = await router.route_item(Item(json={"message": "need pricing details"}))

    assert outcome.selected_index == 1
    assert outcome.match_type is MatchType.FALLBACK_KEYWORD
    assert outcome.matched_keyword == "pricing"
    assert outcome.error == "model down"
    assert routed.json[ROUTE_INFO_KEY]["routeName"] == "Sales"
    assert router.stats.model_failures == 1


@pytest.mark.asyncio
async def test_model_failure_without_fallback_hit():
    router = make_router(SALES, BrokenModel())
    outcome, routed = await router.route_item(Item(json={"message": "hello"}))

    assert outcome.selected_index == 0
    assert outcome.match_type is MatchType.ERROR
    assert routed.json[ERROR_KEY] == "model down"


@pytest.mark.asyncio
async def test_structured_response():
    model = RecordingModel('Sure! {"routeIndex": 2, "reasoning": "matches support"}')
    router = make_router(THREE_ROUTES, model, response_format=ResponseFormat.STRUCTURED)

    buckets = await router.route([Item(json={"message": "my screen is blank"})])

    routed = buckets[2][0]
    assert routed.json[ROUTE_INFO_KEY] == {
        "routeName": "Support",
        "routeIndex": 2,
        "reasoning": "matches support",
    }
    assert '"routeIndex": (number)' in model.prompts[0]


@pytest.mark.asyncio
async def test_index_response():
    model = RecordingModel("Route 3 is best")
    router = make_router(THREE_ROUTES, model)
    outcome, _ = await router.route_item(Item(json={"message": "how much is it"}))
    assert outcome.selected_index == 3
    assert outcome.match_type is MatchType.MODEL


@pytest.mark.asyncio
async def test_out_of_range_index_goes_to_default():
    router = make_router(THREE_ROUTES, RecordingModel("7"))
    outcome, routed = await router.route_item(Item(json={"message": "??"}))
    assert outcome.selected_index == 0
    assert outcome.match_type is MatchType.MODEL
    assert routed.json == {"message": "??"}


@pytest.mark.asyncio
async def test_empty_content_never_calls_model():
    model = RecordingModel("1")
    router = make_router(SALES, model)
    item = Item(json={"id": 1})

    outcome, routed = await router.route_item(item)

    assert outcome.selected_index == 0
    assert outcome.match_type is MatchType.NONE
    assert model.prompts == []
    assert routed == item


@pytest.mark.asyncio
async def test_prompt_sent_to_model():
    model = RecordingModel("1")
    router = make_router(SALES, model)
    await router.route_item(Item(json={"message": "hello"}))
    assert model.prompts == [build_prompt("hello", router.routes, ResponseFormat.INDEX)]
    assert 'Content to analyze: "hello"' in model.prompts[0]
    assert "1. Sales: talks about pricing" in model.prompts[0]
    assert model.prompts[0].endswith("Respond with ONLY the number of the most appropriate route, or 0 if none apply.")


@pytest.mark.asyncio
async def test_existing_route_info_is_kept():
    router = make_router(SALES, RecordingModel("1"))
    earlier = {"routeName": "Earlier", "routeIndex": 9, "reasoning": "first pass"}
    item = Item(json={"message": "hi", ROUTE_INFO_KEY: earlier})

    _, routed = await router.route_item(item)

    assert routed.json[ROUTE_INFO_KEY] == earlier


@pytest.mark.asyncio
async def test_input_item_is_not_mutated():
    router = make_router(SALES, RecordingModel("1"), debug_mode=True)
    item = Item(json={"message": "hi"})
    _, routed = await router.route_item(item)
    assert item.json == {"message": "hi"}
    assert routed is not item
    assert routed.json["message"] == "hi"


@pytest.mark.asyncio
async def test_debug_mode_adds_analysis():
    router = make_router([("Billing", "has word invoice")], debug_mode=True)
    _, routed = await router.route_item(Item(json={"message": "invoice"}))
    assert routed.json[ANALYSIS_KEY] == {
        "matchType": "direct_keyword",
        "matchedKeyword": "invoice",
        "routeIndex": 1,
        "routeName": "Billing",
        "content": "invoice",
    }


@pytest.mark.asyncio
async def test_debug_analysis_for_model_answer():
    router = make_router(THREE_ROUTES, RecordingModel("2"), debug_mode=True)
    _, routed = await router.route_item(Item(json={"message": "help me"}))
    analysis = routed.json[ANALYSIS_KEY]
    assert analysis["matchType"] == "model"
    assert analysis["selectedRoute"] == "Support"
    assert analysis["rawResponse"] == "2"
    assert analysis["strategy"] == "generate"


@pytest.mark.asyncio
async def test_no_analysis_without_debug():
    router = make_router([("Billing", "has word invoice")])
    _, routed = await router.route_item(Item(json={"message": "invoice"}))
    assert ANALYSIS_KEY not in routed.json


@pytest.mark.asyncio
async def test_buckets_preserve_order():
    router = make_router([("Billing", "has word invoice"), ("Support", "has word help")])
    items = [
        Item(json={"message": "help"}),
        Item(json={"message": "invoice"}),
        Item(json={"other": True}),
        Item(json={"message": "more help"}),
    ]
    buckets = await router.route(items)

    assert len(buckets) == 3
    assert [i.json.get("other") for i in buckets[0]] == [True]
    assert [i.json["message"] for i in buckets[1]] == ["invoice"]
    assert [i.json["message"] for i in buckets[2]] == ["help", "more help"]
    assert router.stats.items == 4
    assert router.stats.direct_matches == 3
    assert router.stats.defaults == 1


@pytest.mark.asyncio
async def test_plain_dict_items_are_accepted():
    router = make_router([("Billing", "has word invoice")])
    buckets = await router.route([{"message": "invoice"}])
    assert buckets[1][0].json["message"] == "invoice"


@pytest.mark.asyncio
async def test_continue_on_fail_collects_errors_in_default():
    router = ContentRouter(
        RouterConfig(routes=(Route("Sales", "pricing"),), analysis_field="message", continue_on_fail=True),
        RecordingModel("1"),
        adapter=ExplodingAdapter(),
    )
    buckets = await router.route([Item(json={"other": 1}), Item(json={"message": "hello"})])

    assert len(buckets[0]) == 2
    failed = buckets[0][1]
    assert failed.json == {"message": "hello", "error": "boom"}
    assert failed.paired_item == 1
    assert router.stats.item_errors == 1


@pytest.mark.asyncio
async def test_fail_fast_reports_item_position():
    router = ContentRouter(
        RouterConfig(routes=(Route("Sales", "pricing"),), analysis_field="message"),
        RecordingModel("1"),
        adapter=ExplodingAdapter(),
    )
    with pytest.raises(RoutingError) as exc:
        await router.route([Item(json={"other": 1}), Item(json={"message": "hello"})])

    assert exc.value.item_index == 1
    assert isinstance(exc.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_malformed_input_collected_in_default():
    router = make_router([("Billing", "has word invoice")], continue_on_fail=True)
    buckets = await router.route([None, Item(json={"message": "invoice"})])

    failed = buckets[0][0]
    assert set(failed.json) == {"error"}
    assert failed.paired_item == 0
    assert buckets[1][0].json["message"] == "invoice"
    assert router.stats.item_errors == 1


@pytest.mark.asyncio
async def test_malformed_input_fail_fast():
    router = make_router([("Billing", "has word invoice")])
    with pytest.raises(RoutingError) as exc:
        await router.route([Item(json={"message": "invoice"}), 42])
    assert exc.value.item_index == 1


@pytest.mark.asyncio
async def test_huge_model_number_goes_to_default():
    router = make_router(SALES, RecordingModel("route " + "9" * 5000))
    outcome, routed = await router.route_item(Item(json={"message": "hello"}))
    assert outcome.selected_index == 0
    assert outcome.match_type is MatchType.MODEL
    assert "error" not in routed.json


@pytest.mark.asyncio
async def test_stats_cover_latest_batch_only():
    router = make_router([("Billing", "has word invoice")])
    await router.route([Item(json={"message": "invoice"})])
    await router.route([Item(json={"message": "invoice"})])
    assert router.stats.items == 1
    assert router.stats.direct_matches == 1
