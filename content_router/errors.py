"""Exceptions raised by content-router."""


class RouterError(Exception):
    """Base class for content-router errors."""


class ConfigurationError(RouterError, ValueError):
    """Invalid route or router configuration."""


class ModelUnavailable(RouterError):
    """No language model capability was supplied."""

    def __init__(self, message: str = "No AI language model connected"):
        super().__init__(message)


class ModelInvocationError(RouterError):
    """Every calling convention the model exposes failed.

    The first underlying error is chained as ``__cause__``.
    """

    def __init__(self, message: str, strategy: str | None = None):
        super().__init__(message)
        self.strategy = strategy


class RoutingError(RouterError):
    """Processing of one record failed; raised only in fail-fast mode."""

    def __init__(self, message: str, item_index: int):
        super().__init__(f"{message} [item {item_index}]")
        self.item_index = item_index
