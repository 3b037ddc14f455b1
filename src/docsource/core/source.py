"""DocumentationSource: wires collections, ingestion, sidebar and watch mode together."""

from __future__ import annotations

import logging
from typing import List, Optional

from ..config import Settings, get_settings
from .ingest import NodeIngestor
from .interfaces import ICollection, IContentStore
from .models import IngestReport, SidebarNode
from .options import SourceOptions
from .paths import SlugifyFn, slugify
from .refs import ReferenceResolver
from .sidebar import SidebarBuilder
from .watch import DocsWatcher, WatchSync

logger = logging.getLogger(__name__)


class DocumentationSource:
    """Load a documentation tree into a content store.

    Order of operations in ``load_source``: create collections, ingest every
    matching file, build sidebars once, then (development only) start watching.
    """

    def __init__(
        self,
        options: SourceOptions,
        settings: Optional[Settings] = None,
        slugify_fn: SlugifyFn = slugify,
    ) -> None:
        options.require_path()
        self.options = options
        self.settings = settings or get_settings()
        self.slugify_fn = slugify_fn

        self.collection: Optional[ICollection] = None
        self.resolver: Optional[ReferenceResolver] = None
        self.ingestor: Optional[NodeIngestor] = None
        self.sidebars: List[SidebarNode] = []
        self.watcher: Optional[DocsWatcher] = None

    def create_collections(self, store: IContentStore) -> ICollection:
        self.collection = store.add_collection(self.options.type_name, self.options.route)
        self.resolver = ReferenceResolver(self.options.refs, store)
        self.resolver.setup_collections(self.options.type_name)
        self.ingestor = NodeIngestor(
            self.options,
            self.collection,
            self.resolver,
            slugify_fn=self.slugify_fn,
            max_workers=self.settings.max_workers,
        )
        return self.collection

    async def create_nodes(self) -> IngestReport:
        return await self.ingestor.ingest_all()

    def create_sidebar(self, store: IContentStore) -> List[SidebarNode]:
        builder = SidebarBuilder(self.options.sidebar_order, self.collection)
        self.sidebars = builder.emit(store)
        return self.sidebars

    def watch_files(self) -> DocsWatcher:
        """Start syncing filesystem events into the graph (call from the running loop)."""
        self.watcher = DocsWatcher(WatchSync(self.ingestor))
        self.watcher.start()
        return self.watcher

    async def load_source(self, store: IContentStore, watch: Optional[bool] = None) -> IngestReport:
        self.create_collections(store)
        report = await self.create_nodes()
        self.create_sidebar(store)

        should_watch = self.settings.is_dev if watch is None else watch
        if should_watch:
            self.watch_files()
        return report

    def close(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None
