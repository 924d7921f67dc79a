"""Deferred access to resolved values.

- ``Lazy``: evaluates its rule once, on first ``get()``, and caches the value.
- ``Provider``: evaluates its rule on every ``get()``.
- ``AsyncProvider``: awaits its rule on every ``get()``.

Each handle owns its memoization. Two ``Lazy`` handles for the same key are
independent and evaluate once each.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from ._errors import CircularDependencyError


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")


class LazyState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class Lazy(Generic[T]):
    def __init__(self, rule: Callable[[], T]) -> None:
        self._rule = rule
        self._lock = threading.RLock()
        self._state = LazyState.UNINITIALIZED
        self._value: T | None = None

    @property
    def state(self) -> LazyState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is LazyState.READY

    def get(self) -> T:
        if self._state is LazyState.READY:
            return self._value  # type: ignore[return-value]

        with self._lock:
            # Only the thread already evaluating can get here mid-initialization.
            if self._state is LazyState.INITIALIZING:
                msg = "Lazy handle accessed from inside its own initializer"
                raise CircularDependencyError(msg)

            if self._state is LazyState.UNINITIALIZED:
                self._state = LazyState.INITIALIZING
                try:
                    value = self._rule()
                except BaseException:
                    self._state = LazyState.UNINITIALIZED
                    raise
                self._value = value
                self._state = LazyState.READY

        return self._value  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Lazy({self._state.value})"


class Provider(Generic[T]):
    def __init__(self, rule: Callable[[], T]) -> None:
        self._rule = rule

    def get(self) -> T:
        return self._rule()

    def __repr__(self) -> str:
        return f"Provider({self._rule!r})"


class AsyncProvider(Generic[T]):
    """Like ``Provider``, but ``get()`` must be awaited."""

    def __init__(self, rule: Callable[[], Awaitable[T]]) -> None:
        self._rule = rule

    async def get(self) -> T:
        return await self._rule()

    def __repr__(self) -> str:
        return f"AsyncProvider({self._rule!r})"
