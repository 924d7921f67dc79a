from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ._key import BindingKey


logger = logging.getLogger(__name__)

_EMPTY = object()


class InstanceCell:
    """Holds at most one instance and creates it at most once.

    Threads wait on a ``threading.RLock`` held for the whole creation;
    coroutines wait on an ``asyncio.Lock`` so they yield to the event loop
    instead of blocking it. The value itself is stored under a short guard
    lock that is never held across a creation. A failed creation leaves the
    cell empty.

    A thread and a coroutine racing on an empty cell may both create; the
    first value stored wins and both callers receive it.
    """

    def __init__(self) -> None:
        self._value: Any = _EMPTY
        self._lock = threading.RLock()
        self._guard = threading.Lock()
        self._async_lock: asyncio.Lock | None = None

    @property
    def is_set(self) -> bool:
        return self._value is not _EMPTY

    def set(self, value: object) -> None:
        with self._guard:
            self._value = value

    def _store(self, value: object) -> Any:
        with self._guard:
            if self._value is _EMPTY:
                self._value = value
            return self._value

    def get_or_create(self, create: Callable[[], Any]) -> Any:
        if self._value is not _EMPTY:
            return self._value

        with self._lock:
            if self._value is not _EMPTY:
                return self._value
            return self._store(create())

    async def aget_or_create(self, create: Callable[[], Awaitable[Any]]) -> Any:
        if self._value is not _EMPTY:
            return self._value

        with self._guard:
            if self._async_lock is None:
                self._async_lock = asyncio.Lock()
            async_lock = self._async_lock

        async with async_lock:
            if self._value is not _EMPTY:
                return self._value
            return self._store(await create())


class ScopeStore:
    """Singleton instances created by automatic construction, keyed by binding key."""

    def __init__(self) -> None:
        self._cells: dict[BindingKey, InstanceCell] = {}
        self._guard = threading.Lock()

    def cell(self, key: BindingKey) -> InstanceCell:
        with self._guard:
            cell = self._cells.get(key)
            if cell is None:
                cell = self._cells[key] = InstanceCell()
            return cell

    def get_or_create(self, key: BindingKey, create: Callable[[], Any]) -> Any:
        cell = self.cell(key)
        if not cell.is_set:
            logger.debug("Creating singleton instance for %s", key)
        return cell.get_or_create(create)

    async def aget_or_create(self, key: BindingKey, create: Callable[[], Awaitable[Any]]) -> Any:
        cell = self.cell(key)
        if not cell.is_set:
            logger.debug("Creating singleton instance for %s", key)
        return await cell.aget_or_create(create)
