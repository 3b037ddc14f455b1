from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

# Filters map a dotted field path ("internal.origin") to the value it must equal.
NodeFilter = Dict[str, Any]


class ICollection(ABC):
    """A named, typed bucket of nodes owned by the host graph."""

    type_name: str

    @abstractmethod
    def add(self, node: BaseModel) -> BaseModel: ...

    @abstractmethod
    def update(self, node: BaseModel) -> BaseModel:
        """Replace the node with the same id wholesale."""
        ...

    @abstractmethod
    def remove(self, node_filter: NodeFilter) -> int:
        """Remove matching nodes. Returns the number removed (0 is not an error)."""
        ...

    @abstractmethod
    def query(self, node_filter: Optional[NodeFilter] = None) -> List[BaseModel]:
        """Return matching nodes in registration order."""
        ...

    @abstractmethod
    def add_reference(self, field_name: str, type_name: str) -> None: ...


class IContentStore(ABC):
    @abstractmethod
    def add_collection(self, type_name: str, route: Optional[str] = None) -> ICollection: ...

    @abstractmethod
    def get_collection(self, type_name: str) -> ICollection: ...
