"""Calling conventions for externally supplied language models.

Model objects arrive without a known interface. Each supported convention is
a ``CallingStrategy``: the attribute whose presence selects it, plus a uniform
``(model, prompt) -> raw output`` coroutine. The adapter invokes the first
strategy the object supports and falls back to ``predict`` on failure.
"""

import inspect
import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from content_router.errors import ModelInvocationError, ModelUnavailable
from content_router.models import ModelCallResult

# Keys tried, in order, when a model returns an object instead of text.
RESPONSE_TEXT_FIELDS = ("text", "response", "output")


def _user_message(prompt: str) -> dict[str, str]:
    return {"role": "user", "content": prompt}


def _lookup(obj: Any, key: str | int) -> Any:
    """Key/index or attribute access that returns None instead of raising."""
    if isinstance(obj, Mapping):
        return obj.get(key)
    if isinstance(key, int):
        if isinstance(obj, (list, tuple)) and -len(obj) <= key < len(obj):
            return obj[key]
        return None
    return getattr(obj, key, None)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _call_generate_raw(model: Any, prompt: str) -> Any:
    result = await _resolve(model._generate([_user_message(prompt)]))
    text = _lookup(_lookup(_lookup(_lookup(result, "generations"), 0), 0), "text")
    return text if text is not None else result


async def _call_invocation(model: Any, prompt: str) -> Any:
    messages = [_user_message(prompt)]
    if callable(getattr(model, "call", None)):
        return await _resolve(model.call(messages))
    if callable(getattr(model, "invoke", None)):
        return await _resolve(model.invoke({"messages": messages}))
    raise TypeError("Model exposes invocation_params but neither call() nor invoke()")


async def _call_send_messages(model: Any, prompt: str) -> Any:
    return await _resolve(model.send_messages([_user_message(prompt)]))


async def _call_generate(model: Any, prompt: str) -> Any:
    return await _resolve(model.generate(prompt))


async def _call_plain(model: Any, prompt: str) -> Any:
    return await _resolve(model.call(prompt))


async def _call_predict(model: Any, prompt: str) -> Any:
    return await _resolve(model.predict(prompt))


@dataclass(frozen=True)
class CallingStrategy:
    """One way of calling a model."""

    name: str
    requires: str  # attribute that must be callable on the model
    call: Callable[[Any, str], Awaitable[Any]]

    def supports(self, model: Any) -> bool:
        return callable(getattr(model, self.requires, None))


# Priority order: only the first supported entry is tried.
STRATEGIES: tuple[CallingStrategy, ...] = (
    CallingStrategy("generate_raw", "_generate", _call_generate_raw),
    CallingStrategy("invocation", "invocation_params", _call_invocation),
    CallingStrategy("send_messages", "send_messages", _call_send_messages),
    CallingStrategy("generate", "generate", _call_generate),
    CallingStrategy("call", "call", _call_plain),
)

# Plain-string last resort after the primary strategy failed or was missing.
RECOVERY_STRATEGY = CallingStrategy("predict", "predict", _call_predict)


def select_strategy(model: Any, strategies: tuple[CallingStrategy, ...] = STRATEGIES) -> CallingStrategy | None:
    for strategy in strategies:
        if strategy.supports(model):
            return strategy
    return None


def normalize_output(result: Any) -> str:
    """Coerce whatever a model returned into plain text."""
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, (int, float, bool)):
        return json.dumps(result)
    for key in RESPONSE_TEXT_FIELDS:
        value = _lookup(result, key)
        if value:
            return value if isinstance(value, str) else str(value)
    try:
        return json.dumps(result, default=str)
    except (TypeError, ValueError):
        return str(result)


class ModelAdapter:
    """Invoke a model capability through whichever convention it supports."""

    def __init__(
        self,
        strategies: tuple[CallingStrategy, ...] = STRATEGIES,
        recovery: CallingStrategy | None = RECOVERY_STRATEGY,
    ) -> None:
        self._strategies = strategies
        self._recovery = recovery

    async def invoke(self, model: Any, prompt: str) -> ModelCallResult:
        """Send ``prompt`` to ``model`` and return its normalized answer.

        Raises:
            ModelUnavailable: If ``model`` is None.
            ModelInvocationError: If no convention succeeded. The first error
                from an attempted call is chained as the cause.
        """
        if model is None:
            raise ModelUnavailable()

        first_error: Exception | None = None
        strategy = select_strategy(model, self._strategies)

        if strategy is not None:
            try:
                raw = await strategy.call(model, prompt)
                return ModelCallResult(text=normalize_output(raw), strategy=strategy.name, raw=raw)
            except Exception as e:
                first_error = e
                logger.warning(f"Model call via {strategy.name} failed: {e}")

        if self._recovery is not None and self._recovery.supports(model):
            try:
                raw = await self._recovery.call(model, prompt)
                return ModelCallResult(text=normalize_output(raw), strategy=self._recovery.name, raw=raw)
            except Exception as e:
                logger.warning(f"Model call via {self._recovery.name} failed: {e}")
                if first_error is None:
                    first_error = e
                    strategy = self._recovery

        if first_error is None:
            raise ModelInvocationError("Could not find a compatible method to call the AI model")
        raise ModelInvocationError(
            str(first_error) or type(first_error).__name__, strategy=strategy.name,
        ) from first_error
