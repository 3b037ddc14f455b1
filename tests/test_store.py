"""Tests for the in-memory content store."""

import pytest

from docsource.core.models import StubNode
from docsource.core.store import MemoryContentStore


def test_add_collection_is_idempotent():
    store = MemoryContentStore()
    first = store.add_collection("Tag")
    second = store.add_collection("Tag", route="/tags/:id")

    assert first is second
    assert first.route == "/tags/:id"


def test_unknown_collection():
    with pytest.raises(KeyError):
        MemoryContentStore().get_collection("Missing")


def test_add_update_remove_query():
    collection = MemoryContentStore().add_collection("Tag")
    collection.add(StubNode(id="api", title="api"))
    collection.add(StubNode(id="http", title="http"))

    with pytest.raises(ValueError):
        collection.add(StubNode(id="api", title="again"))

    collection.update(StubNode(id="api", title="API"))
    assert collection.get("api").title == "API"
    assert [n.id for n in collection.query()] == ["api", "http"]
    assert [n.id for n in collection.query({"title": "http"})] == ["http"]

    assert collection.remove({"id": "api"}) == 1
    assert collection.remove({"id": "api"}) == 0
    assert len(collection) == 1


def test_update_missing_node():
    collection = MemoryContentStore().add_collection("Tag")
    with pytest.raises(KeyError):
        collection.update(StubNode(id="nope", title="nope"))
