"""Dependency resolution engine.

This package builds object graphs from bindings: a type plus an optional
qualifier mapped to a construction rule. Classes marked ``@injectable`` are
built automatically from their constructor annotations, and marked fields are
filled after construction.

Exports:
- `Container`: registers bindings and resolves instances, synchronously or with `aresolve`.
- `Lifetime`: singleton (one shared instance per key) or transient (fresh per request).
- Markers: `injectable`, `singleton`, `module`, `produces`, `Qualifier`, `Inject`, `LazyInject`.
- Handles: `Lazy` (evaluated once), `Provider` (evaluated on every `get()`) and
  `AsyncProvider` (awaited on every `get()`).
- `BindingKey`: the (type, qualifier) pair identifying a binding.
- Errors: `ResolutionError` and its subclasses.
"""

from ._container import Container
from ._errors import (
    CircularDependencyError,
    InjectionFailedError,
    NoConstructorError,
    NotFoundError,
    NotInjectableError,
    QualifierMismatchError,
    ResolutionError,
    UnsatisfiedAbstractionError,
)
from ._key import BindingKey
from ._markers import Inject, LazyInject, Lifetime, Qualifier, injectable, module, produces, singleton
from ._wrappers import AsyncProvider, Lazy, LazyState, Provider


__all__ = [
    "AsyncProvider",
    "BindingKey",
    "CircularDependencyError",
    "Container",
    "Inject",
    "InjectionFailedError",
    "Lazy",
    "LazyInject",
    "LazyState",
    "Lifetime",
    "NoConstructorError",
    "NotFoundError",
    "NotInjectableError",
    "Provider",
    "QualifierMismatchError",
    "Qualifier",
    "ResolutionError",
    "UnsatisfiedAbstractionError",
    "injectable",
    "module",
    "produces",
    "singleton",
]
