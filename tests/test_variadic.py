import unittest

from injectron import Container, injectable


class TestVariadicConstructorInjection(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_resolve_ignores_inherited_variadic_args_and_kwargs(self):
        class Base:
            def __init__(self, value: int = 7, *args, **kwargs):
                self.value = value
                self.args = args
                self.kwargs = kwargs

        @injectable
        class Derived(Base):
            ...
            # No explicit __init__; inherits Base.__init__ with *args/**kwargs

        child = self.cont.resolve(Derived)  # should ignore *args/**kwargs and use default for 'value'
        assert isinstance(child, Derived)
        assert child.value == 7
        assert child.args == ()
        assert child.kwargs == {}

    def test_resolve_passes_positional_only_parameters_positionally(self):
        @injectable
        class DB: ...

        @injectable
        class Repo:
            def __init__(self, db: DB, /, name: str = "repo"):
                self.db = db
                self.name = name

        repo = self.cont.resolve(Repo)

        assert isinstance(repo.db, DB)
        assert repo.name == "repo"

    def test_resolve_injects_keyword_only_parameters(self):
        @injectable
        class DB: ...

        @injectable
        class Repo:
            def __init__(self, *, db: DB):
                self.db = db

        assert isinstance(self.cont.resolve(Repo).db, DB)
