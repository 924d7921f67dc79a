import itertools
import threading
import time
import unittest
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor

import pytest

from injectron import (
    CircularDependencyError,
    Container,
    Lazy,
    LazyState,
    NotFoundError,
    Provider,
    ResolutionError,
    injectable,
    singleton,
)


class TestLazy(unittest.TestCase):
    def test_get_evaluates_rule_once(self):
        counter = itertools.count()
        lazy = Lazy(lambda: next(counter))

        assert lazy.state is LazyState.UNINITIALIZED
        assert lazy.get() == 0
        assert lazy.get() == 0
        assert lazy.state is LazyState.READY
        assert lazy.is_initialized

    def test_failed_rule_leaves_handle_uninitialized(self):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                msg = "boom"
                raise RuntimeError(msg)
            return "ok"

        lazy = Lazy(flaky)

        with pytest.raises(RuntimeError, match="boom"):
            lazy.get()
        assert lazy.state is LazyState.UNINITIALIZED

        assert lazy.get() == "ok"
        assert len(attempts) == 2

    def test_reentrant_get_raises_circular_dependency(self):
        lazy: Lazy[int] = Lazy(lambda: lazy.get())

        with pytest.raises(CircularDependencyError):
            lazy.get()
        assert lazy.state is LazyState.UNINITIALIZED

    def test_concurrent_first_access_evaluates_once(self):
        calls = []

        def slow():
            time.sleep(0.05)
            calls.append(1)
            return object()

        lazy = Lazy(slow)
        n = 8
        barrier = threading.Barrier(n)

        def worker():
            barrier.wait()
            return lazy.get()

        with ThreadPoolExecutor(max_workers=n) as pool:
            results = list(pool.map(lambda _: worker(), range(n)))

        assert len(calls) == 1
        assert all(r is results[0] for r in results)


class TestProvider(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_provider_evaluates_on_every_get(self):
        counter = itertools.count()
        self.cont.register(int, factory=lambda _: next(counter))

        provider = self.cont.resolve_provider(int)

        assert [provider.get() for _ in range(5)] == [0, 1, 2, 3, 4]

    def test_lazy_from_container_evaluates_once(self):
        counter = itertools.count()
        self.cont.register(int, factory=lambda _: next(counter))

        lazy = self.cont.resolve_lazy(int)

        assert [lazy.get() for _ in range(3)] == [0, 0, 0]

    def test_lazy_handles_for_same_key_are_independent(self):
        counter = itertools.count()
        self.cont.register(int, factory=lambda _: next(counter))

        first = self.cont.resolve_lazy(int)
        second = self.cont.resolve_lazy(int)

        assert first.get() == 0
        assert second.get() == 1
        assert first.get() == 0

    def test_provider_parameter_is_injected(self):
        counter = itertools.count(1)
        self.cont.register(int, factory=lambda _: next(counter))

        @injectable
        class NumberPrinter:
            def __init__(self, numbers: Provider[int]):
                self.numbers = numbers

            def print_numbers(self, times: int) -> list[int]:
                return [self.numbers.get() for _ in range(times)]

        printer = self.cont.resolve(NumberPrinter)

        assert printer.print_numbers(3) == [1, 2, 3]

    def test_lazy_parameter_defers_construction(self):
        built = []

        @injectable
        class Heavy:
            def __init__(self):
                built.append(self)

        @injectable
        class Consumer:
            def __init__(self, heavy: Lazy[Heavy]):
                self.heavy = heavy

        consumer = self.cont.resolve(Consumer)

        assert built == []
        assert consumer.heavy.get() is consumer.heavy.get()
        assert len(built) == 1

    def test_provider_honors_binding_lifetime(self):
        @injectable
        class Widget: ...

        @singleton
        @injectable
        class Registry: ...

        widgets = self.cont.resolve_provider(Widget)
        registries = self.cont.resolve_provider(Registry)

        assert widgets.get() is not widgets.get()
        assert registries.get() is registries.get()

    def test_provider_for_unresolvable_key_fails_immediately(self):
        class Store(ABC):
            @abstractmethod
            def load(self) -> str: ...

        with pytest.raises(NotFoundError):
            self.cont.resolve_provider(Store)

    def test_provider_for_async_binding_raises(self):
        async def make(_):
            return 1

        self.cont.register_async(int, make)

        with pytest.raises(ResolutionError, match="resolve_async_provider"):
            self.cont.resolve_provider(int)
