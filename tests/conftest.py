from pathlib import Path
from typing import Dict

import pytest

from docsource.config import Settings
from docsource.core.ingest import NodeIngestor
from docsource.core.options import SourceOptions
from docsource.core.refs import ReferenceResolver
from docsource.core.store import MemoryContentStore


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create files (relative path -> content) under root."""
    for relative, content in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    return write_tree(
        tmp_path / "docs",
        {
            "index.md": "# Home\n",
            "v1/index.md": "# Version 1\n",
            "v1/getting-started.md": "---\ntitle: Getting Started\n---\nHello\n",
            "v1/Intro/a.md": "---\nweight: 2\nauthor: jane\n---\nA\n",
            "v1/Intro/b.md": "---\nweight: 1\nauthor: jane\n---\nB\n",
            "v1/Advanced/c.md": "---\nweight: 1\ntags: [api, http]\n---\nC\n",
            "v1/Advanced/deep/d.md": "D\n",
            "v2/Intro/a.md": "---\nweight: 1\n---\nA2\n",
            "notes.txt": "not matched\n",
        },
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="production", max_workers=4)


@pytest.fixture
def options(docs_dir: Path) -> SourceOptions:
    return SourceOptions(
        base_dir=docs_dir,
        path="**/*.md",
        type_name="DocPage",
        sidebar_order={"v1": ["Intro", "Advanced"], "v2": ["Intro"]},
        refs={"author": {"type_name": "Author", "create": True}, "tags": "Tag"},
    )


@pytest.fixture
def store() -> MemoryContentStore:
    return MemoryContentStore()


@pytest.fixture
def ingestor(options: SourceOptions, store: MemoryContentStore) -> NodeIngestor:
    collection = store.add_collection(options.type_name, options.route)
    resolver = ReferenceResolver(options.refs, store)
    resolver.setup_collections(options.type_name)
    return NodeIngestor(options, collection, resolver, max_workers=4)


@pytest.fixture
def write_files():
    return write_tree
