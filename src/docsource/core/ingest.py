"""Bulk and per-file ingestion of documentation files into the content graph.

Files are discovered by expanding the source glob(s) under ``base_dir``.
Reads fan out concurrently, capped by a semaphore of ``max_workers``; each
file either yields a complete node or a FileReadError, never a partial node.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Optional

import frontmatter

from ..config import get_settings
from ..errors import FileReadError
from .interfaces import ICollection
from .models import RESERVED_FIELDS, DocNode, FileInfo, FileUnit, IngestReport, NodeInternal
from .options import SourceOptions
from .paths import compute_path, create_uid, derive_doc_info, detect_mime_type, slugify, SlugifyFn
from .refs import ReferenceResolver

logger = logging.getLogger(__name__)

FRONTMATTER_EXTENSIONS = {".md", ".markdown"}


def _segment_regex(segment: str) -> str:
    out = []
    i = 0
    while i < len(segment):
        char = segment[i]
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = segment.find("]", i + 2 if segment[i + 1:i + 2] in ("!", "]") else i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = segment[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = end
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out)


@lru_cache(maxsize=128)
def compile_glob(pattern: str) -> Optional[re.Pattern]:
    """Compile a glob into a regex with Path.glob semantics.

    ``*``, ``?`` and ``[...]`` stay inside one segment; a ``**`` segment spans
    zero or more directories. A trailing ``**`` matches every file below it on
    Python 3.13+; earlier versions yield only directories for it, so it never
    matches a file there (returns None).
    """
    segments = pattern.replace("\\", "/").strip("/").split("/")
    parts = []
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if segment == "**":
            if last:
                if sys.version_info < (3, 13):
                    return None
                parts.append("(?:[^/]+/)*[^/]+")
                break
            parts.append("(?:[^/]+/)*")
        else:
            parts.append(_segment_regex(segment) + ("" if last else "/"))
    return re.compile("".join(parts))


def matches_patterns(relative_path: str, patterns: Iterable[str]) -> bool:
    """True when a POSIX relative file path would be returned by discover_files."""
    for pattern in patterns:
        regex = compile_glob(pattern)
        if regex is not None and regex.fullmatch(relative_path):
            return True
    return False


def discover_files(base_dir: Path, patterns: List[str]) -> List[str]:
    """Expand glob patterns under base_dir into sorted, unique POSIX relative paths."""
    found = set()
    for pattern in patterns:
        for match in base_dir.glob(pattern):
            if match.is_file():
                found.add(match.relative_to(base_dir).as_posix())
    return sorted(found)


def read_file_unit(base_dir: Path, relative_path: str) -> FileUnit:
    """Read one file relative to base_dir.

    Raises:
        FileReadError: If the file is missing, unreadable or not valid UTF-8
    """
    origin = base_dir / relative_path
    try:
        content = origin.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileReadError(relative_path, origin, exc) from exc

    posix = PurePosixPath(relative_path)
    directory = posix.parent.as_posix()
    return FileUnit(
        origin=origin,
        relative_path=relative_path,
        directory="" if directory == "." else directory,
        name=posix.stem,
        extension=posix.suffix,
        content=content,
        mime_type=detect_mime_type(posix.name),
    )


def extract_fields(unit: FileUnit) -> Dict[str, Any]:
    """Frontmatter metadata for markdown files, minus reserved node fields."""
    if unit.extension.lower() not in FRONTMATTER_EXTENSIONS:
        return {}
    try:
        metadata = frontmatter.loads(unit.content).metadata
    except Exception as exc:
        logger.warning("Ignoring malformed frontmatter in %s: %s", unit.relative_path, exc)
        return {}

    fields = {key: value for key, value in metadata.items() if key not in RESERVED_FIELDS}

    weight = fields.pop("weight", None)
    if weight is not None:
        if isinstance(weight, (int, float)) and not isinstance(weight, bool):
            fields["weight"] = weight
        else:
            logger.warning("Ignoring non-numeric weight %r in %s", weight, unit.relative_path)
    return fields


class NodeIngestor:
    """Turn matched files into DocNodes and register them in a collection."""

    def __init__(
        self,
        options: SourceOptions,
        collection: ICollection,
        resolver: ReferenceResolver,
        slugify_fn: SlugifyFn = slugify,
        max_workers: Optional[int] = None,
    ) -> None:
        self.options = options
        self.collection = collection
        self.resolver = resolver
        self.slugify_fn = slugify_fn
        self.max_workers = max_workers or get_settings().max_workers

    @property
    def base_dir(self) -> Path:
        return self.options.base_dir

    def build_node(self, unit: FileUnit) -> DocNode:
        """Build the full node record for a file unit."""
        doc_info = derive_doc_info(unit.directory)
        fields = extract_fields(unit)
        return DocNode(
            **fields,
            id=create_uid(unit.relative_path),
            path=compute_path(
                unit.directory,
                unit.name,
                index_names=self.options.index,
                slugify_fn=self.slugify_fn,
                path_prefix=self.options.path_prefix,
                trailing_slash=self.options.permalinks.trailing_slash,
            ),
            file_info=FileInfo(
                extension=unit.extension,
                directory=unit.directory,
                path=unit.relative_path,
                name=unit.name,
            ),
            version=doc_info["version"],
            section=doc_info["section"],
            internal=NodeInternal(
                mime_type=unit.mime_type,
                content=unit.content,
                origin=str(unit.origin),
            ),
        )

    async def load_node(self, relative_path: str) -> DocNode:
        """Read a file off the event loop and build its node."""
        unit = await asyncio.to_thread(read_file_unit, self.base_dir, relative_path)
        return self.build_node(unit)

    def register(self, node: DocNode) -> DocNode:
        """Create the node on first sight, replace it wholesale on resync, then resolve refs."""
        if self.collection.query({"id": node.id}):
            registered = self.collection.update(node)
        else:
            registered = self.collection.add(node)
        self.resolver.resolve(registered)
        return registered

    async def ingest_file(self, relative_path: str) -> DocNode:
        node = await self.load_node(relative_path)
        return self.register(node)

    async def ingest_all(self) -> IngestReport:
        """Discover and ingest every matching file.

        A FileReadError is recorded in the report and does not stop sibling
        files. Any other exception propagates.
        """
        patterns = self.options.require_path()
        files = discover_files(self.base_dir, patterns)
        report = IngestReport(discovered=len(files))
        if not files:
            logger.info("No files matched %s under %s", patterns, self.base_dir)
            return report

        semaphore = asyncio.Semaphore(self.max_workers)

        async def bounded(relative_path: str) -> DocNode:
            async with semaphore:
                return await self.load_node(relative_path)

        results = await asyncio.gather(*(bounded(f) for f in files), return_exceptions=True)

        # Register in discovery order so that equal sidebar weights keep a stable order.
        for relative_path, result in zip(files, results):
            if isinstance(result, FileReadError):
                logger.warning("Skipping %s: %s", relative_path, result.cause)
                report.errors.append(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                report.nodes.append(self.register(result))

        logger.info(
            "Ingested %d/%d files into %s (%d failed)",
            len(report.nodes),
            len(files),
            self.options.type_name,
            len(report.errors),
        )
        return report
