from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from ._errors import InjectionFailedError


if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._container import Container
    from ._introspection import FieldInjection


logger = logging.getLogger(__name__)


class PropertyInjector:
    """Fills ``Inject`` / ``LazyInject`` fields on a freshly built instance.

    A field that cannot be written is an error, never skipped.
    """

    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def inject(self, instance: object, fields: Sequence[FieldInjection], ambient: str | None) -> None:
        for field in fields:
            self._ensure_writable(instance, field)
            qualifier = field.qualifier if field.qualifier is not None else ambient
            if field.lazy:
                value: Any = self._resolver.resolve_lazy(field.interface, qualifier)
            else:
                try:
                    value = self._resolver.resolve(field.interface, qualifier)
                except Exception as e:  # noqa: BLE001
                    raise self._failure(instance, field, e) from e
            self._assign(instance, field, value)

    async def ainject(self, instance: object, fields: Sequence[FieldInjection], ambient: str | None) -> None:
        for field in fields:
            self._ensure_writable(instance, field)
            qualifier = field.qualifier if field.qualifier is not None else ambient
            if field.lazy:
                value: Any = self._resolver.resolve_lazy(field.interface, qualifier)
            else:
                try:
                    value = await self._resolver.aresolve(field.interface, qualifier)
                except Exception as e:  # noqa: BLE001
                    raise self._failure(instance, field, e) from e
            self._assign(instance, field, value)

    def _ensure_writable(self, instance: object, field: FieldInjection) -> None:
        cls = type(instance)
        attr = inspect.getattr_static(cls, field.name, None)
        if isinstance(attr, property) and attr.fset is None:
            msg = f"Cannot inject read-only property '{field.name}' of {cls.__name__}"
            raise InjectionFailedError(msg)

        params = getattr(cls, "__dataclass_params__", None)
        if params is not None and params.frozen:
            msg = f"Cannot inject field '{field.name}' of frozen dataclass {cls.__name__}"
            raise InjectionFailedError(msg)

    def _assign(self, instance: object, field: FieldInjection, value: object) -> None:
        try:
            setattr(instance, field.name, value)
        except (AttributeError, TypeError) as e:
            raise self._failure(instance, field, e) from e
        logger.debug("Injected %s.%s", type(instance).__name__, field.name)

    def _failure(self, instance: object, field: FieldInjection, cause: Exception) -> InjectionFailedError:
        msg = f"Cannot inject field '{field.name}' of {type(instance).__name__}: {cause}"
        return InjectionFailedError(msg)
