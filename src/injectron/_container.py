from __future__ import annotations

import functools
import inspect
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from ._constructor import Constructor
from ._context import resolving
from ._errors import (
    NotFoundError,
    NotInjectableError,
    QualifierMismatchError,
    ResolutionError,
    UnsatisfiedAbstractionError,
)
from ._introspection import collect_producers
from ._key import BindingKey, type_name
from ._markers import Lifetime, get_declared_qualifier, get_metadata
from ._registry import Binding, BindingRegistry
from ._scope import ScopeStore
from ._validation import check_instance, is_abstract, validate_impl
from ._wrappers import AsyncProvider, Lazy, Provider


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ._introspection import ProducerSpec

    T = TypeVar("T")


logger = logging.getLogger(__name__)


class Container:
    """Dependency resolution engine.

    - register implementations, factories or instances under (type, qualifier) keys
    - resolve with constructor and field injection
    - lifetimes: singleton / transient
    - producer modules
    - Lazy, Provider and AsyncProvider handles

    ``compatible_lookup=True`` lets a request with no exact binding fall back to
    a binding registered under a subclass of the requested type (same qualifier).
    """

    def __init__(self, *, compatible_lookup: bool = False) -> None:
        self._registry = BindingRegistry()
        self._scope = ScopeStore()
        self._constructor = Constructor(self)
        self._compatible_lookup = compatible_lookup

    @property
    def compatible_lookup(self) -> bool:
        return self._compatible_lookup

    def register(
        self,
        token: type[T],
        impl: type | None = None,
        *,
        qualifier: str | None = None,
        factory: Callable[[Container], T] | None = None,
        lifetime: Lifetime | None = None,
    ) -> None:
        """Register a concrete type, an implementation or a factory for a token.

        Example:
          container.register(Engine)
          container.register(MessageService, EmailService)
          container.register(MessageService, qualifier="sms", factory=lambda c: SmsService())

        With ``impl``, the key qualifier defaults to the impl's declared
        ``@Qualifier`` and the lifetime to its ``@singleton`` marker.
        Registering a ``@module`` class alone installs its producers.
        """
        if impl is not None and factory is not None:
            msg = "Provide either `impl` or `factory`, not both."
            raise ValueError(msg)

        if factory is not None:
            key = BindingKey(token, qualifier)
            self._registry.register(Binding(key, factory=factory, lifetime=lifetime or Lifetime.TRANSIENT))
            return

        if impl is None:
            metadata = get_metadata(token)
            if metadata is not None and metadata.module:
                self.install_module(token)
                return
            if is_abstract(token):
                msg = f"{type_name(token)} is abstract: provide either `impl` or `factory`."
                raise ValueError(msg)
            impl = token
        else:
            if inspect.isclass(token):
                validate_impl(cls=token, impl=impl)
            if qualifier is None:
                qualifier = get_declared_qualifier(impl)

        metadata = get_metadata(impl)
        if metadata is None or not metadata.injectable:
            msg = (
                f"{type_name(impl)} is not marked with @injectable and no factory was provided.\n"
                f"Hint: container.register({type_name(token)}, factory=lambda c: ...)"
            )
            raise NotInjectableError(msg)

        key = BindingKey(token, qualifier)
        self._registry.register(Binding(key, impl=impl, lifetime=lifetime or metadata.lifetime))

    def register_singleton(
        self,
        token: type[T],
        impl: type | None = None,
        *,
        qualifier: str | None = None,
        factory: Callable[[Container], T] | None = None,
    ) -> None:
        """Like ``register``, but the binding builds its instance once and caches it."""
        self.register(token, impl, qualifier=qualifier, factory=factory, lifetime=Lifetime.SINGLETON)

    def register_instance(
        self,
        token: type[T],
        instance: T,
        *,
        qualifier: str | None = None,
        replace: bool = False,
    ) -> None:
        """Register a pre-built instance (always singleton)."""
        if inspect.isclass(token):
            validate_impl(cls=token, impl=type(instance))

        key = BindingKey(token, qualifier)
        if not replace and key in self._registry:
            msg = f"{key} is already registered. Pass replace=True to overwrite."
            raise KeyError(msg)

        binding = Binding(key, factory=lambda _: instance, lifetime=Lifetime.SINGLETON)
        binding.cell.set(instance)  # type: ignore[union-attr]
        self._registry.register(binding)

    def register_async(
        self,
        token: type[T],
        factory: Callable[[Container], Awaitable[T]],
        *,
        qualifier: str | None = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> None:
        """Register a factory that must be awaited. Only ``aresolve`` and ``AsyncProvider`` can use it."""
        key = BindingKey(token, qualifier)
        self._registry.register(Binding(key, factory=factory, lifetime=lifetime, is_async=True))

    def install_module(self, module_cls: type[T]) -> T:
        """Instantiate a ``@module`` class and register each of its producers.

        The module itself is built by the constructor resolver, never through
        its own producers. Returns the module instance.
        """
        metadata = get_metadata(module_cls)
        if metadata is None or not metadata.module:
            msg = f"{type_name(module_cls)} is not marked with @module"
            raise NotInjectableError(msg)

        producers = collect_producers(module_cls)
        with resolving(BindingKey(module_cls)):
            instance = self._constructor.construct(module_cls)

        for producer in producers:
            method = getattr(instance, producer.name)
            if producer.is_async:
                factory: Callable[..., Any] = functools.partial(self._aproduce, method, producer, metadata.qualifier)
            else:
                factory = functools.partial(self._produce, method, producer, metadata.qualifier)

            key = BindingKey(producer.interface, producer.qualifier)
            self._registry.register(
                Binding(key, factory=factory, lifetime=producer.lifetime, is_async=producer.is_async)
            )

        logger.debug("Installed module %s with %d producer(s)", type_name(module_cls), len(producers))
        return instance

    def unregister(self, token: object, qualifier: str | None = None) -> bool:
        """Remove the binding for (token, qualifier) together with its cached instance.

        Returns False when nothing was registered under that key.
        """
        return self._registry.remove(BindingKey(token, qualifier)) is not None

    def is_registered(self, token: object, qualifier: str | None = None) -> bool:
        return BindingKey(token, qualifier) in self._registry

    def can_resolve(self, token: object, qualifier: str | None = None) -> bool:
        """Whether ``token`` has any resolution path: a binding, automatic construction or a compatible binding."""
        key = BindingKey(token, qualifier)
        return key in self._registry or self._is_constructible(token) or self._find_compatible(key) is not None

    def resolve(self, token: type[T], qualifier: str | None = None) -> T:
        """Resolve the token to an instance.

        - If a binding exists for (token, qualifier): use it (factory/impl).
        - If the token is a concrete ``@injectable`` class: construct it
          (once per key when it is also ``@singleton``).
        - Otherwise, with ``compatible_lookup``, use a binding of a subclass.
        - Otherwise fail.
        """
        key = BindingKey(token, qualifier)
        with resolving(key):
            return self._resolve_key(key)

    async def aresolve(self, token: type[T], qualifier: str | None = None) -> T:
        """Resolve the token, awaiting async factories anywhere in the graph."""
        key = BindingKey(token, qualifier)
        with resolving(key):
            return await self._aresolve_key(key)

    def resolve_lazy(self, token: type[T], qualifier: str | None = None) -> Lazy[T]:
        return Lazy(functools.partial(self.resolve, token, qualifier))

    def resolve_provider(self, token: type[T], qualifier: str | None = None) -> Provider[T]:
        key = BindingKey(token, qualifier)
        self._ensure_resolvable(key)
        binding = self._registry.get(key)
        if binding is not None and binding.is_async:
            msg = f"{key} is bound to an async factory. Use resolve_async_provider()."
            raise ResolutionError(msg)
        return Provider(functools.partial(self.resolve, token, qualifier))

    def resolve_async_provider(self, token: type[T], qualifier: str | None = None) -> AsyncProvider[T]:
        key = BindingKey(token, qualifier)
        self._ensure_resolvable(key)
        return AsyncProvider(functools.partial(self.aresolve, token, qualifier))

    def _resolve_key(self, key: BindingKey) -> Any:
        binding = self._registry.get(key)
        if binding is not None:
            return self._invoke(binding)

        cls = key.interface
        if self._is_constructible(cls):
            if get_metadata(cls).lifetime == Lifetime.SINGLETON:  # type: ignore[union-attr]
                return self._scope.get_or_create(key, lambda: self._constructor.construct(cls, key.qualifier))
            return self._constructor.construct(cls, key.qualifier)

        binding = self._find_compatible(key)
        if binding is not None:
            return self._invoke(binding)

        raise self._unsatisfied(key)

    async def _aresolve_key(self, key: BindingKey) -> Any:
        binding = self._registry.get(key)
        if binding is not None:
            return await self._ainvoke(binding)

        cls = key.interface
        if self._is_constructible(cls):
            if get_metadata(cls).lifetime == Lifetime.SINGLETON:  # type: ignore[union-attr]
                return await self._scope.aget_or_create(
                    key, lambda: self._constructor.aconstruct(cls, key.qualifier)
                )
            return await self._constructor.aconstruct(cls, key.qualifier)

        binding = self._find_compatible(key)
        if binding is not None:
            return await self._ainvoke(binding)

        raise self._unsatisfied(key)

    def _invoke(self, binding: Binding) -> Any:
        if binding.is_async:
            msg = f"{binding.key} is bound to an async factory. Use aresolve() or an AsyncProvider."
            raise ResolutionError(msg)

        if binding.cell is not None:
            return binding.cell.get_or_create(lambda: self._create(binding))
        return self._create(binding)

    async def _ainvoke(self, binding: Binding) -> Any:
        if binding.cell is not None:
            return await binding.cell.aget_or_create(lambda: self._acreate(binding))
        return await self._acreate(binding)

    def _create(self, binding: Binding) -> Any:
        if binding.impl is not None:
            return self._constructor.construct(binding.impl, binding.key.qualifier)

        instance = binding.factory(self)  # type: ignore[misc]
        check_instance(binding.key.interface, instance)
        return instance

    async def _acreate(self, binding: Binding) -> Any:
        if binding.impl is not None:
            return await self._constructor.aconstruct(binding.impl, binding.key.qualifier)

        instance = binding.factory(self)  # type: ignore[misc]
        if inspect.isawaitable(instance):
            instance = await instance
        check_instance(binding.key.interface, instance)
        return instance

    def _produce(self, method: Callable[..., Any], producer: ProducerSpec, ambient: str | None, _: Container) -> Any:
        return self._constructor.invoke(method, producer.parameters, ambient, owner=producer.name)

    async def _aproduce(
        self, method: Callable[..., Any], producer: ProducerSpec, ambient: str | None, _: Container
    ) -> Any:
        return await self._constructor.ainvoke(method, producer.parameters, ambient, owner=producer.name)

    def _is_constructible(self, tp: object) -> bool:
        if not inspect.isclass(tp) or is_abstract(tp):
            return False
        metadata = get_metadata(tp)
        return metadata is not None and (metadata.injectable or metadata.module)

    def _find_compatible(self, key: BindingKey) -> Binding | None:
        if not self._compatible_lookup:
            return None

        binding = self._registry.find_compatible(key.interface, key.qualifier)
        if binding is not None:
            logger.debug("No exact binding for %s, widening to %s", key, binding.key)
        return binding

    def _ensure_resolvable(self, key: BindingKey) -> None:
        if not self.can_resolve(key.interface, key.qualifier):
            raise self._unsatisfied(key)

    def _unsatisfied(self, key: BindingKey) -> ResolutionError:
        name = type_name(key.interface)

        if key.qualifier is not None:
            others = [q for q in self._registry.qualifiers_for(key.interface) if q != key.qualifier]
            if others:
                available = ", ".join(repr(q) for q in others)
                msg = f"No binding for {key}. {name} is registered with qualifier(s): {available}"
                return QualifierMismatchError(msg)

        registered = ", ".join(str(k) for k in self._registry.keys()) or "None"

        if is_abstract(key.interface):
            msg = (
                f"No binding registered for abstract type {key}.\n"
                f"Registered keys: {registered}\n"
                f"Hint: container.register({name}, impl=...) or install a module producing it"
            )
            return UnsatisfiedAbstractionError(msg)

        if inspect.isclass(key.interface):
            msg = (
                f"{key} is not registered and {name} is not marked with @injectable.\n"
                f"Registered keys: {registered}"
            )
            return NotInjectableError(msg)

        msg = f"No binding registered for {key}.\nRegistered keys: {registered}"
        return NotFoundError(msg)
