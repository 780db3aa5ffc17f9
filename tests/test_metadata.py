import dataclasses
import unittest

import pytest

from ioctree import Container, Metadata, Scope
from ioctree._metadata import MetadataStore, service_name


class Foo: ...


class TestMetadataStore(unittest.TestCase):
    store: MetadataStore

    def setUp(self):
        self.store = MetadataStore()

    def test_lookup_unknown_identity_returns_none(self):
        assert self.store.lookup(Foo) is None
        assert Foo not in self.store

    def test_stamp_creates_sequential_ids(self):
        first = self.store.stamp(Foo, Scope.SINGLETON)
        second = self.store.stamp(object(), Scope.TRANSIENT)

        assert first == Metadata(scope=Scope.SINGLETON, id="di1", name="Foo")
        assert second.id == "di2"
        assert second.name == "unknown"
        assert len(self.store) == 2

    def test_stamp_is_idempotent(self):
        first = self.store.stamp(Foo, Scope.REQUEST)
        again = self.store.stamp(Foo, Scope.MOCK)

        assert again is first
        assert again.scope is Scope.REQUEST
        assert len(self.store) == 1

    def test_metadata_is_immutable(self):
        metadata = self.store.stamp(Foo, Scope.SINGLETON)

        with pytest.raises(dataclasses.FrozenInstanceError):
            metadata.id = "di99"

    def test_unhashable_identity_is_supported(self):
        key = ["not", "hashable"]
        metadata = self.store.stamp(key, Scope.SINGLETON)

        assert self.store.lookup(key) is metadata
        assert self.store.lookup(["not", "hashable"]) is None


def test_service_name_falls_back_to_unknown():
    assert service_name(Foo) == "Foo"
    assert service_name(len) == "len"
    assert service_name({"a": 1}) == "unknown"


def test_metadata_is_stamped_once_per_family():
    c = Container()
    c.bind_as_dynamic(Foo, lambda _: Foo(), scope=Scope.REQUEST)
    child = c.create_child()

    assert child.metadata_for(Foo) is c.metadata_for(Foo)
    assert Container().metadata_for(Foo) is None


def test_hashable_identities_match_by_value():
    store = MetadataStore()
    metadata = store.stamp("database", Scope.SINGLETON)

    assert store.lookup("".join(["data", "base"])) is metadata
    assert store.lookup(("cache", 1)) is None
    assert store.by_id(metadata.id) is metadata


def test_string_identity_built_at_runtime_resolves():
    c = Container()
    c.bind_as_constant("db-url", "sqlite://")

    assert c.get("-".join(["db", "url"])) == "sqlite://"
