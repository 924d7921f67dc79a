import unittest

import pytest

from injectron import BindingKey, Lifetime, NotFoundError
from injectron._registry import Binding, BindingRegistry


class Animal: ...


class Dog(Animal): ...


class Cat(Animal): ...


class TestBindingKey(unittest.TestCase):
    def test_keys_with_same_type_and_qualifier_are_equal(self):
        assert BindingKey(Dog, "a") == BindingKey(Dog, "a")
        assert hash(BindingKey(Dog, "a")) == hash(BindingKey(Dog, "a"))

    def test_unqualified_key_differs_from_qualified(self):
        assert BindingKey(Dog) != BindingKey(Dog, "a")

    def test_str_shows_qualifier(self):
        assert str(BindingKey(Dog)) == "Dog"
        assert str(BindingKey(Dog, "loud")) == "Dog['loud']"


class TestBindingRegistry(unittest.TestCase):
    registry: BindingRegistry

    def setUp(self):
        self.registry = BindingRegistry()

    def test_resolve_returns_registered_binding(self):
        binding = Binding(BindingKey(Dog), factory=lambda _: Dog())
        self.registry.register(binding)

        assert self.registry.resolve(BindingKey(Dog)) is binding
        assert BindingKey(Dog) in self.registry

    def test_resolve_missing_key_raises_not_found(self):
        with pytest.raises(NotFoundError, match="Dog"):
            self.registry.resolve(BindingKey(Dog))
        assert self.registry.get(BindingKey(Dog)) is None

    def test_register_overwrites_and_moves_key_to_end(self):
        first = Binding(BindingKey(Dog), factory=lambda _: Dog())
        self.registry.register(first)
        self.registry.register(Binding(BindingKey(Cat), factory=lambda _: Cat()))
        second = Binding(BindingKey(Dog), factory=lambda _: Dog())
        self.registry.register(second)

        assert self.registry.resolve(BindingKey(Dog)) is second
        assert self.registry.keys() == [BindingKey(Cat), BindingKey(Dog)]

    def test_singleton_binding_owns_a_cell(self):
        singleton = Binding(BindingKey(Dog), factory=lambda _: Dog(), lifetime=Lifetime.SINGLETON)
        transient = Binding(BindingKey(Cat), factory=lambda _: Cat())

        assert singleton.cell is not None
        assert transient.cell is None

    def test_remove_returns_binding_once(self):
        binding = Binding(BindingKey(Dog), factory=lambda _: Dog())
        self.registry.register(binding)

        assert self.registry.remove(BindingKey(Dog)) is binding
        assert self.registry.remove(BindingKey(Dog)) is None
        assert BindingKey(Dog) not in self.registry

    def test_qualifiers_for_lists_every_qualifier_of_a_type(self):
        self.registry.register(Binding(BindingKey(Dog), factory=lambda _: Dog()))
        self.registry.register(Binding(BindingKey(Dog, "loud"), factory=lambda _: Dog()))
        self.registry.register(Binding(BindingKey(Cat, "quiet"), factory=lambda _: Cat()))

        assert self.registry.qualifiers_for(Dog) == [None, "loud"]

    def test_find_compatible_matches_subclass_with_same_qualifier(self):
        dog = Binding(BindingKey(Dog, "pet"), factory=lambda _: Dog())
        self.registry.register(Binding(BindingKey(Cat), factory=lambda _: Cat()))
        self.registry.register(dog)

        assert self.registry.find_compatible(Animal, "pet") is dog
        assert self.registry.find_compatible(Animal, "wild") is None
        assert self.registry.find_compatible(Dog, "pet") is None
        assert self.registry.find_compatible("animal", None) is None
