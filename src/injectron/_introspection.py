"""Reads what a class needs before the container builds it.

A ``ConstructionPlan`` is computed once per class and cached: the constructor
parameters in declaration order, and the fields marked for injection. Each
dependency is described by its target type, its explicit qualifier (``None``
means "inherit the ambient qualifier") and the handle it should be wrapped in.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, get_args, get_origin, get_type_hints

from ._errors import NoConstructorError
from ._key import type_name
from ._markers import (
    Inject,
    LazyInject,
    Lifetime,
    Qualifier,
    get_declared_qualifier,
    get_metadata,
    get_producer_metadata,
)
from ._wrappers import AsyncProvider, Lazy, Provider


if TYPE_CHECKING:
    from collections.abc import Callable


logger = logging.getLogger(__name__)

EMPTY = inspect.Parameter.empty

_WRAPPERS = (Lazy, Provider, AsyncProvider)


@dataclass(frozen=True)
class Dependency:
    name: str
    interface: Any
    qualifier: str | None = None
    wrapper: type | None = None
    default: Any = EMPTY
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def has_default(self) -> bool:
        return self.default is not EMPTY

    @property
    def is_annotated(self) -> bool:
        return self.interface is not EMPTY


@dataclass(frozen=True)
class FieldInjection:
    name: str
    interface: Any
    qualifier: str | None = None
    lazy: bool = False


@dataclass(frozen=True)
class ConstructionPlan:
    cls: type
    parameters: tuple[Dependency, ...]
    fields: tuple[FieldInjection, ...]


@dataclass(frozen=True)
class ProducerSpec:
    name: str
    interface: Any
    qualifier: str | None
    lifetime: Lifetime
    is_async: bool
    parameters: tuple[Dependency, ...]


@dataclass(frozen=True)
class _Unwrapped:
    interface: Any
    qualifier: str | None
    wrapper: type | None
    markers: tuple[Any, ...]


def _unwrap(annotation: Any) -> _Unwrapped:
    """Split ``Annotated[Lazy[T], Qualifier("x")]`` into ``T``, ``"x"`` and ``Lazy``."""
    markers: tuple[Any, ...] = ()
    if get_origin(annotation) is Annotated:
        annotation, *extras = get_args(annotation)
        markers = tuple(extras)

    qualifier = None
    for marker in markers:
        if isinstance(marker, Qualifier):
            qualifier = marker.name
        elif isinstance(marker, (Inject, LazyInject)) and marker.qualifier is not None:
            qualifier = marker.qualifier

    wrapper = None
    origin = get_origin(annotation)
    if origin in _WRAPPERS:
        wrapper = origin
        annotation = get_args(annotation)[0]
    elif annotation in _WRAPPERS:
        msg = f"{annotation.__name__} annotation needs a type argument, e.g. {annotation.__name__}[Service]"
        raise TypeError(msg)

    return _Unwrapped(interface=annotation, qualifier=qualifier, wrapper=wrapper, markers=markers)


def _type_hints(target: object, owner: str) -> dict[str, Any]:
    try:
        return get_type_hints(target, include_extras=True)
    except TypeError:
        return {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, owner)
        return {}


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    init = inspect.getattr_static(cls, "__init__", None)
    if init is None or init is object.__init__:
        return {}
    return _type_hints(init, f"{cls.__name__} ({cls.__qualname__})")


def _dependencies(sig: inspect.Signature, hints: dict[str, Any]) -> tuple[Dependency, ...]:
    deps = []
    for name, p in sig.parameters.items():
        if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
            continue

        annotation = hints.get(name, EMPTY)
        if annotation is EMPTY:
            deps.append(Dependency(name=name, interface=EMPTY, default=p.default, kind=p.kind))
            continue

        unwrapped = _unwrap(annotation)
        deps.append(
            Dependency(
                name=name,
                interface=unwrapped.interface,
                qualifier=unwrapped.qualifier,
                wrapper=unwrapped.wrapper,
                default=p.default,
                kind=p.kind,
            )
        )
    return tuple(deps)


def _fields(cls: type) -> tuple[FieldInjection, ...]:
    fields = []
    for name, annotation in _type_hints(cls, cls.__name__).items():
        if get_origin(annotation) is not Annotated:
            continue

        unwrapped = _unwrap(annotation)
        marker = next((m for m in unwrapped.markers if isinstance(m, (Inject, LazyInject))), None)
        if marker is None:
            continue

        if unwrapped.wrapper not in (None, Lazy):
            msg = f"Field {cls.__name__}.{name} cannot be injected as {unwrapped.wrapper.__name__}"
            raise TypeError(msg)

        fields.append(
            FieldInjection(
                name=name,
                interface=unwrapped.interface,
                qualifier=unwrapped.qualifier,
                lazy=isinstance(marker, LazyInject),
            )
        )
    return tuple(fields)


def construction_plan(cls: type) -> ConstructionPlan:
    """The plan for ``cls``, cached on the class' own metadata."""
    metadata = get_metadata(cls)
    if metadata is not None and metadata.plan is not None:
        return metadata.plan

    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError) as e:
        msg = f"No usable constructor found for {type_name(cls)}: {e}"
        raise NoConstructorError(msg) from e

    plan = ConstructionPlan(
        cls=cls,
        parameters=_dependencies(sig, _get_init_type_hints(cls)),
        fields=_fields(cls),
    )
    if metadata is not None:
        metadata.plan = plan
    return plan


def collect_producers(module_cls: type) -> list[ProducerSpec]:
    """Producer methods of a module class, in definition order (base classes first)."""
    methods: dict[str, Callable[..., Any]] = {}
    for klass in reversed(module_cls.__mro__):
        for name, attr in vars(klass).items():
            if inspect.isfunction(attr):
                methods[name] = attr
            else:
                methods.pop(name, None)

    producers = []
    for name, func in methods.items():
        metadata = get_producer_metadata(func)
        if metadata is None:
            continue

        owner = f"{module_cls.__name__}.{name}"
        hints = _type_hints(func, owner)
        if hints.get("return", type(None)) is type(None):
            msg = f"Cannot determine the produced type of {owner}: add a return annotation"
            raise TypeError(msg)

        output = _unwrap(hints["return"])
        qualifier = metadata.qualifier
        if qualifier is None:
            qualifier = get_declared_qualifier(func)
        if qualifier is None:
            qualifier = output.qualifier

        sig = inspect.signature(func)
        params = list(sig.parameters.values())[1:]  # drop self
        producers.append(
            ProducerSpec(
                name=name,
                interface=output.interface,
                qualifier=qualifier,
                lifetime=metadata.lifetime,
                is_async=inspect.iscoroutinefunction(func),
                parameters=_dependencies(sig.replace(parameters=params), hints),
            )
        )
    return producers
