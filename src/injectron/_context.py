"""Resolution chain tracking.

The chain of keys currently being resolved lives in a ``ContextVar``, so each
thread and each asyncio task sees only its own chain. Entering a key that is
already on the chain means the graph loops back on itself.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

from ._errors import CircularDependencyError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._key import BindingKey

_resolution_chain: ContextVar[tuple[BindingKey, ...]] = ContextVar(
    "_INJECTRON_RESOLUTION_CHAIN",
    default=(),
)


@contextmanager
def resolving(key: BindingKey) -> Iterator[None]:
    chain = _resolution_chain.get()
    if key in chain:
        cycle = " -> ".join(str(k) for k in (*chain, key))
        msg = f"Circular dependency detected: {cycle}"
        raise CircularDependencyError(msg)

    token = _resolution_chain.set((*chain, key))
    try:
        yield
    finally:
        _resolution_chain.reset(token)
