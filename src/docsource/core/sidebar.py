"""Sidebar assembly with prev/next chaining inside each section."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

from .interfaces import ICollection, IContentStore
from .models import DocNode, SidebarNode, SidebarSection

logger = logging.getLogger(__name__)

SIDEBAR_TYPE = "Sidebar"


def weight_key(node: DocNode) -> tuple:
    # Unweighted nodes go after weighted ones.
    return (node.weight is None, node.weight or 0)


def sort_section(nodes: Sequence[DocNode]) -> List[DocNode]:
    """Stable-sort nodes by weight and link them into a prev/next chain in place."""
    ordered = sorted(nodes, key=weight_key)
    for i, node in enumerate(ordered):
        node.prev = ordered[i - 1].path if i > 0 else None
        node.next = ordered[i + 1].path if i + 1 < len(ordered) else None
    return ordered


class SidebarBuilder:
    """Build one Sidebar node per version from the declared section order.

    Runs once against a fully ingested, quiescent collection.
    """

    def __init__(self, sidebar_order: Mapping[str, Sequence[str]], collection: ICollection) -> None:
        self.sidebar_order = sidebar_order
        self.collection = collection

    def build(self) -> List[SidebarNode]:
        sidebars: Dict[str, SidebarNode] = {}

        for version, titles in self.sidebar_order.items():
            for title in titles:
                matched = self.collection.query({"section": title, "version": version})
                for node in sort_section(matched):
                    self.collection.update(node)
                    self._append(sidebars, version, title, node.path)

        return list(sidebars.values())

    @staticmethod
    def _append(sidebars: Dict[str, SidebarNode], version: str, title: str, path: str) -> None:
        sidebar = sidebars.setdefault(version, SidebarNode(id=version))
        for section in sidebar.sections:
            if section.title == title:
                section.items.append(path)
                return
        sidebar.sections.append(SidebarSection(title=title, items=[path]))

    def emit(self, store: IContentStore) -> List[SidebarNode]:
        """Build the sidebars and register them in the Sidebar collection."""
        collection = store.add_collection(SIDEBAR_TYPE)
        sidebars = self.build()
        for sidebar in sidebars:
            collection.add(sidebar)
        logger.info(
            "Built %d sidebar(s): %s",
            len(sidebars),
            ", ".join(s.id for s in sidebars) or "none",
        )
        return sidebars
