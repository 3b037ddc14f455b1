"""Reference resolution: stub nodes for referenced values."""

from __future__ import annotations

import logging
from collections.abc import Hashable
from typing import Any, Iterable, Mapping, Set, Tuple

from pydantic import BaseModel

from .interfaces import IContentStore
from .models import ReferenceSpec, StubNode

logger = logging.getLogger(__name__)

RefKey = Tuple[str, str, Any]


class ReferenceResolver:
    """Create deduplicated stub nodes for declared reference fields.

    The created-stub cache is owned by this instance and only grows: a stub is
    never retracted when the node that referenced it goes away.
    """

    def __init__(self, refs: Mapping[str, ReferenceSpec], store: IContentStore) -> None:
        self.refs = dict(refs)
        self.store = store
        self.created: Set[RefKey] = set()

    def setup_collections(self, collection_type: str) -> None:
        """Declare references on the source collection and create stub targets."""
        collection = self.store.get_collection(collection_type)
        for field_name, ref in self.refs.items():
            collection.add_reference(field_name, ref.type_name)
            if ref.create:
                self.store.add_collection(ref.type_name, ref.route)

    def resolve(self, node: BaseModel) -> int:
        """Create missing stubs for every reference field on ``node``. Returns stubs created."""
        created = 0
        for field_name, ref in self.refs.items():
            if not ref.create:
                continue
            value = getattr(node, field_name, None)
            if not value:
                continue
            for item in _as_values(value):
                if self._add_stub(ref.type_name, field_name, item):
                    created += 1
        return created

    def _add_stub(self, type_name: str, field_name: str, value: Any) -> bool:
        if not value:
            return False
        if not isinstance(value, Hashable):
            logger.warning("Skipping unhashable %s reference value %r", field_name, value)
            return False
        key: RefKey = (type_name, field_name, value)
        if key in self.created:
            return False
        self.created.add(key)
        collection = self.store.get_collection(type_name)
        # Another field may already have materialized the same target id.
        if collection.query({"id": value}):
            return False
        collection.add(StubNode(id=value, title=value))
        logger.debug("Created %s stub %r for field %s", type_name, value, field_name)
        return True


def _as_values(value: Any) -> Iterable[Any]:
    if isinstance(value, (list, tuple)):
        return value
    return (value,)


__all__ = ["ReferenceResolver", "RefKey"]
