"""Declarative markers read by the container.

Class-level markers are kept in an ``InjectableMetadata`` stored in the class'
own ``__dict__``: a subclass of an ``@injectable`` class is not injectable
until it is marked itself.

Example::

    @singleton
    @injectable
    @Qualifier("email")
    class EmailService(MessageService): ...

    @injectable
    class Notifier:
        audit: Annotated[AuditLog, Inject()]
        archive: Annotated[Lazy[Archive], LazyInject()]

        def __init__(self, sender: Annotated[MessageService, Qualifier("sms")]) -> None:
            self.sender = sender

    @module
    class AnimalModule:
        @produces
        def dog(self) -> Animal:
            return Dog()

        @produces(qualifier="lazy")
        def cat(self) -> Animal:
            return Cat()
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar, overload


if TYPE_CHECKING:
    from collections.abc import Callable

    C = TypeVar("C", bound=type)
    F = TypeVar("F", bound=Callable[..., Any])

_METADATA_ATTR = "__injectron__"
_PRODUCER_ATTR = "__injectron_producer__"
_QUALIFIER_ATTR = "__injectron_qualifier__"


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass
class InjectableMetadata:
    injectable: bool = False
    module: bool = False
    lifetime: Lifetime = Lifetime.TRANSIENT
    qualifier: str | None = None
    plan: Any = field(default=None, repr=False, compare=False)  # ConstructionPlan, filled on first build


@dataclass(frozen=True)
class ProducerMetadata:
    qualifier: str | None = None
    lifetime: Lifetime = Lifetime.TRANSIENT


@dataclass(frozen=True)
class Qualifier:
    """Names one of several bindings for the same type.

    Works as ``Annotated`` metadata and as a class or producer decorator.
    """

    name: str

    def __call__(self, target: F) -> F:
        if inspect.isclass(target):
            _metadata_for_update(target).qualifier = self.name
        else:
            setattr(target, _QUALIFIER_ATTR, self.name)
        return target


@dataclass(frozen=True)
class Inject:
    """Field marker: resolve and assign right after construction."""

    qualifier: str | None = None


@dataclass(frozen=True)
class LazyInject:
    """Field marker: assign a ``Lazy`` handle instead of the value."""

    qualifier: str | None = None


def get_metadata(cls: object) -> InjectableMetadata | None:
    if not inspect.isclass(cls):
        return None
    return cls.__dict__.get(_METADATA_ATTR)


def _metadata_for_update(cls: type) -> InjectableMetadata:
    metadata = cls.__dict__.get(_METADATA_ATTR)
    if metadata is None:
        metadata = InjectableMetadata()
        setattr(cls, _METADATA_ATTR, metadata)
    return metadata


@overload
def injectable(cls: C, /) -> C: ...


@overload
def injectable(
    *, lifetime: Lifetime | None = ..., qualifier: str | None = ...
) -> Callable[[C], C]: ...


def injectable(
    cls: C | None = None,
    /,
    *,
    lifetime: Lifetime | None = None,
    qualifier: str | None = None,
) -> C | Callable[[C], C]:
    """Mark a class as eligible for automatic construction."""

    def decorate(target: C) -> C:
        metadata = _metadata_for_update(target)
        metadata.injectable = True
        if lifetime is not None:
            metadata.lifetime = lifetime
        if qualifier is not None:
            metadata.qualifier = qualifier
        return target

    if cls is not None:
        return decorate(cls)
    return decorate


def singleton(cls: C) -> C:
    """Share one instance per binding key. Combine with ``@injectable``."""
    _metadata_for_update(cls).lifetime = Lifetime.SINGLETON
    return cls


def module(cls: C) -> C:
    """Mark a class whose ``@produces`` methods contribute bindings."""
    _metadata_for_update(cls).module = True
    return cls


@overload
def produces(func: F, /) -> F: ...


@overload
def produces(
    *, qualifier: str | None = ..., lifetime: Lifetime = ...
) -> Callable[[F], F]: ...


def produces(
    func: F | None = None,
    /,
    *,
    qualifier: str | None = None,
    lifetime: Lifetime = Lifetime.TRANSIENT,
) -> F | Callable[[F], F]:
    """Mark a module method as a producer of its return type."""

    def decorate(target: F) -> F:
        setattr(target, _PRODUCER_ATTR, ProducerMetadata(qualifier=qualifier, lifetime=lifetime))
        return target

    if func is not None:
        return decorate(func)
    return decorate


def get_producer_metadata(func: object) -> ProducerMetadata | None:
    return getattr(func, _PRODUCER_ATTR, None)


def get_declared_qualifier(target: object) -> str | None:
    """Qualifier declared on a class or producer function, if any."""
    if inspect.isclass(target):
        metadata = get_metadata(target)
        return metadata.qualifier if metadata else None
    return getattr(target, _QUALIFIER_ATTR, None)
