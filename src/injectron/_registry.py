from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._errors import NotFoundError
from ._markers import Lifetime
from ._scope import InstanceCell


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._key import BindingKey


logger = logging.getLogger(__name__)


@dataclass
class Binding:
    key: BindingKey
    factory: Callable[..., Any] | None = None  # called with the container
    impl: type | None = None  # built by the constructor resolver
    lifetime: Lifetime = Lifetime.TRANSIENT
    is_async: bool = False
    cell: InstanceCell | None = field(default=None, repr=False)  # cached singleton

    def __post_init__(self) -> None:
        if self.lifetime == Lifetime.SINGLETON and self.cell is None:
            self.cell = InstanceCell()


class BindingRegistry:
    """Maps binding keys to bindings.

    - one binding per key; registering again overwrites (and drops the cached singleton)
    - iteration follows registration order
    """

    def __init__(self) -> None:
        self._bindings: dict[BindingKey, Binding] = {}
        self._lock = threading.RLock()

    def register(self, binding: Binding) -> None:
        with self._lock:
            if binding.key in self._bindings:
                logger.debug("Overwriting binding for %s", binding.key)
                # keep registration order aligned with the latest write
                del self._bindings[binding.key]
            else:
                logger.debug("Registering %s binding for %s", binding.lifetime.value, binding.key)
            self._bindings[binding.key] = binding

    def get(self, key: BindingKey) -> Binding | None:
        with self._lock:
            return self._bindings.get(key)

    def resolve(self, key: BindingKey) -> Binding:
        binding = self.get(key)
        if binding is None:
            msg = f"No binding registered for {key}"
            raise NotFoundError(msg)
        return binding

    def remove(self, key: BindingKey) -> Binding | None:
        with self._lock:
            binding = self._bindings.pop(key, None)
        if binding is not None:
            logger.debug("Removed binding for %s", key)
        return binding

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._bindings

    def keys(self) -> list[BindingKey]:
        with self._lock:
            return list(self._bindings)

    def qualifiers_for(self, interface: object) -> list[str | None]:
        with self._lock:
            return [key.qualifier for key in self._bindings if key.interface == interface]

    def find_compatible(self, interface: object, qualifier: str | None) -> Binding | None:
        """First binding registered under a strict subclass of ``interface`` with the same qualifier."""
        if not inspect.isclass(interface):
            return None

        with self._lock:
            for key, binding in self._bindings.items():
                if key.qualifier != qualifier or key.interface is interface:
                    continue
                if inspect.isclass(key.interface) and _is_subclass(key.interface, interface):
                    return binding
        return None


def _is_subclass(sub: type, sup: type) -> bool:
    try:
        return issubclass(sub, sup)
    except TypeError:
        # non runtime-checkable protocols reject issubclass; check the MRO instead
        return sup in sub.__mro__
