from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from ._errors import NotFoundError, NotInjectableError
from ._injector import PropertyInjector
from ._introspection import construction_plan
from ._key import type_name
from ._markers import get_metadata
from ._wrappers import AsyncProvider, Lazy, Provider


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ._container import Container
    from ._introspection import ConstructionPlan, Dependency

    T = TypeVar("T")


logger = logging.getLogger(__name__)


class Constructor:
    """Builds marked classes by resolving their constructor parameters, then their fields.

    Parameters are resolved left to right; each one uses its own qualifier if it
    declares one, otherwise the ambient qualifier of the request.
    """

    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver
        self._injector = PropertyInjector(resolver)

    def construct(self, cls: type[T], qualifier: str | None = None) -> T:
        plan = self._plan(cls)
        instance = self.invoke(cls, plan.parameters, qualifier, owner=cls.__name__)
        self._injector.inject(instance, plan.fields, qualifier)
        logger.debug("Constructed %s", type_name(cls))
        return instance

    async def aconstruct(self, cls: type[T], qualifier: str | None = None) -> T:
        plan = self._plan(cls)
        instance = await self.ainvoke(cls, plan.parameters, qualifier, owner=cls.__name__)
        await self._injector.ainject(instance, plan.fields, qualifier)
        logger.debug("Constructed %s", type_name(cls))
        return instance

    def invoke(
        self,
        target: Callable[..., T],
        parameters: Sequence[Dependency],
        qualifier: str | None,
        *,
        owner: str,
    ) -> T:
        values = [self.resolve_dependency(dep, qualifier, owner=owner) for dep in parameters]
        args, kwargs = self._materialize_call(parameters, values)
        return target(*args, **kwargs)

    async def ainvoke(
        self,
        target: Callable[..., Any],
        parameters: Sequence[Dependency],
        qualifier: str | None,
        *,
        owner: str,
    ) -> Any:
        values = [await self.aresolve_dependency(dep, qualifier, owner=owner) for dep in parameters]
        args, kwargs = self._materialize_call(parameters, values)
        result = target(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def resolve_dependency(self, dep: Dependency, ambient: str | None, *, owner: str) -> Any:
        """Resolving a parameter.

        Resolution precedence:
        1. handle (Lazy / Provider / AsyncProvider) for wrapped annotations
        2. type-based resolution
        3. default, when the parameter's own key cannot be resolved
        4. error.
        """
        if not dep.is_annotated:
            return self._unannotated(dep, owner)

        qualifier = dep.qualifier if dep.qualifier is not None else ambient
        if dep.wrapper is not None:
            return self._handle(dep, qualifier)

        if dep.has_default and not self._resolver.can_resolve(dep.interface, qualifier):
            return dep.default

        return self._resolver.resolve(dep.interface, qualifier)

    async def aresolve_dependency(self, dep: Dependency, ambient: str | None, *, owner: str) -> Any:
        if not dep.is_annotated:
            return self._unannotated(dep, owner)

        qualifier = dep.qualifier if dep.qualifier is not None else ambient
        if dep.wrapper is not None:
            return self._handle(dep, qualifier)

        if dep.has_default and not self._resolver.can_resolve(dep.interface, qualifier):
            return dep.default

        return await self._resolver.aresolve(dep.interface, qualifier)

    def _unannotated(self, dep: Dependency, owner: str) -> Any:
        if dep.has_default:
            return dep.default

        msg = (
            f"Cannot satisfy constructor parameter '{dep.name}' for {owner}. "
            "It has neither a type annotation nor a default."
        )
        raise NotFoundError(msg)

    def _handle(self, dep: Dependency, qualifier: str | None) -> Any:
        if dep.wrapper is Lazy:
            return self._resolver.resolve_lazy(dep.interface, qualifier)
        if dep.wrapper is Provider:
            return self._resolver.resolve_provider(dep.interface, qualifier)
        if dep.wrapper is AsyncProvider:
            return self._resolver.resolve_async_provider(dep.interface, qualifier)
        msg = f"Unsupported handle type {dep.wrapper!r}"
        raise TypeError(msg)

    def _plan(self, cls: type) -> ConstructionPlan:
        metadata = get_metadata(cls)
        if metadata is None or not (metadata.injectable or metadata.module):
            msg = (
                f"{type_name(cls)} is not marked with @injectable.\n"
                "Hint: decorate it with @injectable or register a factory for it"
            )
            raise NotInjectableError(msg)
        return construction_plan(cls)

    def _materialize_call(
        self, parameters: Sequence[Dependency], values: Sequence[Any]
    ) -> tuple[list[Any], dict[str, Any]]:
        args, kwargs = [], {}
        for dep, value in zip(parameters, values):
            if dep.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[dep.name] = value
        return args, kwargs
