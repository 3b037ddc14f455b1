"""In-memory content store.

Implements the collection interface for the CLI and for tests. A host that owns
its own graph plugs in its own ICollection/IContentStore instead.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .interfaces import IContentStore, ICollection, NodeFilter

logger = logging.getLogger(__name__)

_MISSING = object()


def get_field(node: BaseModel, dotted: str) -> Any:
    """Resolve a dotted field path on a node, returning a sentinel when absent."""
    current: Any = node
    for part in dotted.split("."):
        if isinstance(current, dict):
            current = current.get(part, _MISSING)
        else:
            current = getattr(current, part, _MISSING)
        if current is _MISSING:
            return _MISSING
    return current


def matches(node: BaseModel, node_filter: Optional[NodeFilter]) -> bool:
    if not node_filter:
        return True
    return all(get_field(node, key) == expected for key, expected in node_filter.items())


class MemoryCollection(ICollection):
    """Nodes keyed by id, kept in registration order."""

    def __init__(self, type_name: str, route: Optional[str] = None) -> None:
        self.type_name = type_name
        self.route = route
        self.references: Dict[str, str] = {}
        self._nodes: Dict[Any, BaseModel] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def add(self, node: BaseModel) -> BaseModel:
        node_id = getattr(node, "id")
        if node_id in self._nodes:
            raise ValueError(f"{self.type_name} node already exists: {node_id}")
        self._nodes[node_id] = node
        return node

    def update(self, node: BaseModel) -> BaseModel:
        node_id = getattr(node, "id")
        if node_id not in self._nodes:
            raise KeyError(f"{self.type_name} node not found: {node_id}")
        self._nodes[node_id] = node
        return node

    def remove(self, node_filter: NodeFilter) -> int:
        doomed = [node_id for node_id, node in self._nodes.items() if matches(node, node_filter)]
        for node_id in doomed:
            del self._nodes[node_id]
        return len(doomed)

    def query(self, node_filter: Optional[NodeFilter] = None) -> List[BaseModel]:
        return [node for node in self._nodes.values() if matches(node, node_filter)]

    def get(self, node_id: Any) -> Optional[BaseModel]:
        return self._nodes.get(node_id)

    def add_reference(self, field_name: str, type_name: str) -> None:
        self.references[field_name] = type_name


class MemoryContentStore(IContentStore):
    def __init__(self) -> None:
        self.collections: Dict[str, MemoryCollection] = {}

    def add_collection(self, type_name: str, route: Optional[str] = None) -> MemoryCollection:
        collection = self.collections.get(type_name)
        if collection is None:
            collection = MemoryCollection(type_name, route)
            self.collections[type_name] = collection
            logger.debug("Created collection %s (route=%s)", type_name, route)
        elif route and not collection.route:
            collection.route = route
        return collection

    def get_collection(self, type_name: str) -> MemoryCollection:
        try:
            return self.collections[type_name]
        except KeyError:
            raise KeyError(f"Unknown collection: {type_name}") from None

    def dump(self) -> Dict[str, List[Dict[str, Any]]]:
        """Serialize every collection to plain dicts (None fields omitted)."""
        return {
            name: [node.model_dump(mode="json", exclude_none=True) for node in collection.query()]
            for name, collection in self.collections.items()
        }
