import asyncio
from abc import ABC, abstractmethod

import pytest

from injectron import (
    AsyncProvider,
    Container,
    Lifetime,
    NotFoundError,
    ResolutionError,
    injectable,
    module,
    produces,
    singleton,
)


class Connection:
    def __init__(self, dsn: str = "memory://"):
        self.dsn = dsn


@pytest.mark.asyncio
async def test_async_provider_awaits_factory():
    c = Container()

    async def fetch(_):
        await asyncio.sleep(0.01)
        return "Data from database"

    c.register_async(str, fetch)
    provider = c.resolve_async_provider(str)

    assert await provider.get() == "Data from database"


@pytest.mark.asyncio
async def test_async_provider_parameter_is_injected_without_awaiting():
    c = Container()

    async def fetch(_):
        await asyncio.sleep(0.01)
        return "Data from database"

    c.register_async(str, fetch)

    @injectable
    class DataRepository:
        def __init__(self, data: AsyncProvider[str]):
            self.data = data

        async def get_data(self) -> str:
            return await self.data.get()

    repo = c.resolve(DataRepository)

    assert await repo.get_data() == "Data from database"


@pytest.mark.asyncio
async def test_async_provider_evaluates_on_every_get():
    c = Container()
    calls = []

    async def make(_):
        calls.append(1)
        return len(calls)

    c.register_async(int, make)
    provider = c.resolve_async_provider(int)

    assert [await provider.get() for _ in range(3)] == [1, 2, 3]


@pytest.mark.asyncio
async def test_aresolve_awaits_async_dependency_in_graph():
    c = Container()

    async def connect(_):
        await asyncio.sleep(0)
        return Connection("postgres://")

    c.register_async(Connection, connect)

    @injectable
    class Repo:
        def __init__(self, conn: Connection):
            self.conn = conn

    repo = await c.aresolve(Repo)

    assert repo.conn.dsn == "postgres://"


@pytest.mark.asyncio
async def test_aresolve_handles_synchronous_bindings():
    c = Container()
    c.register(Connection, factory=lambda _: Connection("sqlite://"))

    conn = await c.aresolve(Connection)

    assert conn.dsn == "sqlite://"


@pytest.mark.asyncio
async def test_concurrent_aresolve_of_async_singleton_creates_once():
    c = Container()
    calls = []

    async def connect(_):
        calls.append(1)
        await asyncio.sleep(0.05)
        return Connection()

    c.register_async(Connection, connect, lifetime=Lifetime.SINGLETON)

    results = await asyncio.gather(*(c.aresolve(Connection) for _ in range(10)))

    assert len(calls) == 1
    assert all(r is results[0] for r in results)


@pytest.mark.asyncio
async def test_concurrent_aresolve_of_marked_singleton_constructs_once():
    c = Container()
    built = []

    async def connect(_):
        await asyncio.sleep(0.05)
        return Connection()

    c.register_async(Connection, connect)

    @singleton
    @injectable
    class Pool:
        def __init__(self, conn: Connection):
            built.append(self)
            self.conn = conn

    results = await asyncio.gather(*(c.aresolve(Pool) for _ in range(10)))

    assert len(built) == 1
    assert all(r is results[0] for r in results)


@pytest.mark.asyncio
async def test_async_producer_is_awaited():
    c = Container()

    @module
    class DatabaseModule:
        @produces
        async def connection(self) -> Connection:
            await asyncio.sleep(0)
            return Connection("produced://")

    c.install_module(DatabaseModule)

    conn = await c.aresolve(Connection)

    assert conn.dsn == "produced://"
    with pytest.raises(ResolutionError):
        c.resolve(Connection)


@pytest.mark.asyncio
async def test_resolve_async_provider_for_unresolvable_key_fails_immediately():
    c = Container()

    class Store(ABC):
        @abstractmethod
        def load(self) -> str: ...

    with pytest.raises(NotFoundError):
        c.resolve_async_provider(Store)


@pytest.mark.asyncio
async def test_failed_async_singleton_is_retried():
    c = Container()
    attempts = []

    async def connect(_):
        attempts.append(1)
        if len(attempts) == 1:
            msg = "database unavailable"
            raise ConnectionError(msg)
        return Connection()

    c.register_async(Connection, connect, lifetime=Lifetime.SINGLETON)

    with pytest.raises(ConnectionError):
        await c.aresolve(Connection)

    first = await c.aresolve(Connection)

    assert await c.aresolve(Connection) is first
    assert len(attempts) == 2
