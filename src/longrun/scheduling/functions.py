# src/longrun/scheduling/functions.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from .trigger_models import TriggerEvent

TaskFunction = Callable[[TriggerEvent], None] | Callable[[TriggerEvent], Awaitable[None]]

logger = logging.getLogger(__name__)


class FunctionRegistry:
    """Maps the function names triggers refer to onto Python callables."""

    def __init__(self) -> None:
        self._funcs: dict[str, TaskFunction] = {}

    def register(self, name: str, func: TaskFunction) -> None:
        key = name.strip()
        if not key:
            raise ValueError("function name is required")
        if key in self._funcs and self._funcs[key] is not func:
            logger.warning("Function %s re-registered; replacing previous callable", key)
        self._funcs[key] = func

    def task(self, name: str | None = None) -> Callable[[TaskFunction], TaskFunction]:
        """Decorator form of register(); defaults to the function's __name__."""

        def decorator(func: TaskFunction) -> TaskFunction:
            self.register(name or func.__name__, func)
            return func

        return decorator

    def get(self, name: str) -> TaskFunction | None:
        return self._funcs.get(name)

    def names(self) -> list[str]:
        return sorted(self._funcs)


functions = FunctionRegistry()
