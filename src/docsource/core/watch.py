"""Watch-mode synchronization of the content graph with the filesystem.

WatchSync applies one add/change/unlink event at a time per path; mutations on
the same path are serialized with a per-path asyncio.Lock. DocsWatcher bridges
watchdog's observer thread onto the asyncio loop that owns the graph.

The sidebar is not rebuilt by any of these events.
"""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import Future
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import FileReadError
from .ingest import NodeIngestor, matches_patterns
from .models import DocNode

logger = logging.getLogger(__name__)

ADD = "add"
CHANGE = "change"
UNLINK = "unlink"


class WatchSync:
    """Translate filesystem events into graph mutations."""

    def __init__(self, ingestor: NodeIngestor) -> None:
        self.ingestor = ingestor
        self.collection = ingestor.collection
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, int] = {}

    @property
    def base_dir(self) -> Path:
        return self.ingestor.base_dir

    @asynccontextmanager
    async def _serialized(self, relative_path: str) -> AsyncIterator[None]:
        """Hold the per-path lock; the lock is dropped once no event for the path is in flight."""
        lock = self._locks.get(relative_path)
        if lock is None:
            lock = self._locks[relative_path] = asyncio.Lock()
        self._pending[relative_path] = self._pending.get(relative_path, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._pending[relative_path] -= 1
            if not self._pending[relative_path]:
                del self._pending[relative_path]
                del self._locks[relative_path]

    def relative(self, path: str) -> Optional[str]:
        """POSIX path relative to base_dir, or None when outside it."""
        try:
            return Path(path).resolve().relative_to(self.base_dir).as_posix()
        except ValueError:
            return None

    def accepts(self, relative_path: str) -> bool:
        return matches_patterns(relative_path, self.ingestor.options.path or [])

    async def on_add(self, relative_path: str) -> DocNode:
        async with self._serialized(relative_path):
            node = await self.ingestor.ingest_file(relative_path)
        logger.info("Added %s -> %s", relative_path, node.path)
        return node

    async def on_change(self, relative_path: str) -> DocNode:
        """Rebuild the node for a changed file and replace the stored node wholesale."""
        async with self._serialized(relative_path):
            node = await self.ingestor.load_node(relative_path)
            if self.collection.query({"id": node.id}):
                node = self.collection.update(node)
            else:
                logger.debug("Change for untracked %s, adding it", relative_path)
                node = self.collection.add(node)
            self.ingestor.resolver.resolve(node)
        logger.info("Updated %s", relative_path)
        return node

    async def on_unlink(self, relative_path: str) -> int:
        """Remove the node whose origin is the deleted file. A miss is a no-op."""
        origin = str(self.base_dir / relative_path)
        async with self._serialized(relative_path):
            removed = self.collection.remove({"internal.origin": origin})
        if removed:
            logger.info("Removed %s", relative_path)
        else:
            logger.debug("No node for removed file %s", relative_path)
        return removed

    async def dispatch(self, kind: str, relative_path: str):
        relative_path = relative_path.replace("\\", "/")
        if kind == ADD:
            return await self.on_add(relative_path)
        if kind == CHANGE:
            return await self.on_change(relative_path)
        if kind == UNLINK:
            return await self.on_unlink(relative_path)
        raise ValueError(f"Unknown watch event: {kind}")


class WatchEventHandler(FileSystemEventHandler):
    """Forward watchdog events from the observer thread onto the asyncio loop."""

    def __init__(self, sync: WatchSync, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self.sync = sync
        self.loop = loop

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._submit(ADD, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._submit(CHANGE, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._submit(UNLINK, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._submit(UNLINK, event.src_path)
            self._submit(ADD, event.dest_path)

    def _submit(self, kind: str, path) -> None:
        relative_path = self.sync.relative(os.fsdecode(path))
        if relative_path is None or not self.sync.accepts(relative_path):
            return
        future = asyncio.run_coroutine_threadsafe(self.sync.dispatch(kind, relative_path), self.loop)
        future.add_done_callback(lambda f: _log_failure(f, kind, relative_path))


def _log_failure(future: Future, kind: str, relative_path: str) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if isinstance(exc, FileReadError):
        logger.warning("Watch %s for %s failed: %s", kind, relative_path, exc.cause)
    elif exc is not None:
        logger.error("Watch %s for %s failed", kind, relative_path, exc_info=exc)


class DocsWatcher:
    """Run a watchdog observer over base_dir for the lifetime of a dev session."""

    def __init__(self, sync: WatchSync, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.sync = sync
        self.loop = loop
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        loop = self.loop or asyncio.get_running_loop()
        handler = WatchEventHandler(self.sync, loop)
        self._observer = Observer()
        self._observer.schedule(handler, str(self.sync.base_dir), recursive=True)
        self._observer.start()
        logger.info("Watching %s for changes", self.sync.base_dir)

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        logger.info("Stopped watching %s", self.sync.base_dir)
