"""Tests for watch-mode graph synchronization."""

import asyncio
from pathlib import Path

import pytest

from docsource.core.ingest import discover_files
from docsource.core.paths import create_uid
from docsource.core.watch import ADD, CHANGE, UNLINK, WatchEventHandler, WatchSync, matches_patterns
from docsource.errors import FileReadError


@pytest.fixture
def sync(ingestor):
    return WatchSync(ingestor)


class TestPatterns:
    def test_double_star_matches_root_and_nested(self):
        assert matches_patterns("index.md", ["**/*.md"])
        assert matches_patterns("v1/intro/a.md", ["**/*.md"])
        assert not matches_patterns("notes.txt", ["**/*.md"])

    def test_any_pattern(self):
        assert matches_patterns("notes.txt", ["**/*.md", "*.txt"])

    def test_single_star_stays_in_one_directory(self):
        assert matches_patterns("index.md", ["*.md"])
        assert not matches_patterns("v1/index.md", ["*.md"])

    def test_inner_double_star_matches_zero_directories(self):
        assert matches_patterns("v1/a.md", ["v1/**/*.md"])
        assert matches_patterns("v1/Intro/deep/a.md", ["v1/**/*.md"])
        assert not matches_patterns("v2/a.md", ["v1/**/*.md"])

    @pytest.mark.parametrize(
        "pattern",
        ["*.md", "v1/**/*.md", "**/*.md", "v1/*/*.md", "v?/Intro/[ab].md", "v1/[!I]*/*.md", "v1/**"],
    )
    def test_agrees_with_discovery(self, docs_dir: Path, pattern: str):
        every_file = discover_files(docs_dir, ["**/*"])
        accepted = {f for f in every_file if matches_patterns(f, [pattern])}
        assert accepted == set(discover_files(docs_dir, [pattern]))


class TestWatchSync:
    @pytest.mark.asyncio
    async def test_add_registers_node_and_refs(self, sync, ingestor, docs_dir: Path, store):
        (docs_dir / "v2" / "new.md").write_text("---\nauthor: sam\n---\nNew\n")

        node = await sync.dispatch(ADD, "v2/new.md")

        assert node.path == "/v2/new"
        assert node.version == "v2"
        assert ingestor.collection.get(create_uid("v2/new.md")) is node
        assert [a.id for a in store.get_collection("Author").query()] == ["sam"]

    @pytest.mark.asyncio
    async def test_change_of_unchanged_file_is_identical(self, sync, ingestor):
        await ingestor.ingest_all()
        before = ingestor.collection.get(create_uid("v1/getting-started.md"))

        after = await sync.dispatch(CHANGE, "v1/getting-started.md")

        assert after.id == before.id
        assert after.internal == before.internal
        assert after.path == before.path
        assert len(ingestor.collection) == 8

    @pytest.mark.asyncio
    async def test_change_replaces_wholesale(self, sync, ingestor, docs_dir: Path):
        await ingestor.ingest_all()
        (docs_dir / "v1" / "getting-started.md").write_text("plain body\n")

        node = await sync.dispatch(CHANGE, "v1/getting-started.md")

        assert node.internal.content == "plain body\n"
        assert getattr(node, "title", None) is None
        assert ingestor.collection.get(node.id) is node

    @pytest.mark.asyncio
    async def test_unlink_removes_matching_origin(self, sync, ingestor, docs_dir: Path):
        await ingestor.ingest_all()
        (docs_dir / "v1" / "getting-started.md").unlink()

        removed = await sync.dispatch(UNLINK, "v1/getting-started.md")

        assert removed == 1
        assert ingestor.collection.get(create_uid("v1/getting-started.md")) is None
        assert len(ingestor.collection) == 7

    @pytest.mark.asyncio
    async def test_path_locks_released_after_events(self, sync, ingestor, docs_dir: Path):
        await asyncio.gather(
            sync.dispatch(ADD, "v1/getting-started.md"),
            sync.dispatch(CHANGE, "v1/getting-started.md"),
        )
        (docs_dir / "v1" / "getting-started.md").unlink()
        await sync.dispatch(UNLINK, "v1/getting-started.md")

        assert sync._locks == {}
        assert sync._pending == {}
        assert len(ingestor.collection) == 0

    @pytest.mark.asyncio
    async def test_unlink_unknown_is_noop(self, sync, ingestor):
        await ingestor.ingest_all()

        removed = await sync.dispatch(UNLINK, "v1/never-existed.md")

        assert removed == 0
        assert len(ingestor.collection) == 8

    @pytest.mark.asyncio
    async def test_removed_nodes_keep_their_stubs(self, sync, ingestor, store):
        await ingestor.ingest_all()

        await sync.dispatch(UNLINK, "v1/Intro/a.md")
        await sync.dispatch(UNLINK, "v1/Intro/b.md")

        assert [a.id for a in store.get_collection("Author").query()] == ["jane"]

    @pytest.mark.asyncio
    async def test_add_of_missing_file_raises_without_registering(self, sync, ingestor):
        with pytest.raises(FileReadError):
            await sync.dispatch(ADD, "v1/ghost.md")
        assert len(ingestor.collection) == 0

    @pytest.mark.asyncio
    async def test_windows_separators_normalized(self, sync, ingestor):
        node = await sync.dispatch(ADD, "v1\\getting-started.md")
        assert node.file_info.path == "v1/getting-started.md"

    @pytest.mark.asyncio
    async def test_unknown_event(self, sync):
        with pytest.raises(ValueError):
            await sync.dispatch("rename", "v1/index.md")

    def test_relative_path(self, sync, docs_dir: Path, tmp_path: Path):
        assert sync.relative(str(docs_dir / "v1" / "index.md")) == "v1/index.md"
        assert sync.relative(str(tmp_path / "elsewhere.md")) is None


class TestWatchEventHandler:
    @pytest.mark.asyncio
    async def test_events_are_filtered_and_forwarded(self, sync, ingestor, docs_dir: Path):
        from watchdog.events import FileCreatedEvent, FileDeletedEvent

        loop = asyncio.get_running_loop()
        handler = WatchEventHandler(sync, loop)
        target = docs_dir / "v1" / "getting-started.md"

        await asyncio.to_thread(handler.on_created, FileCreatedEvent(str(docs_dir / "notes.txt")))
        await asyncio.to_thread(handler.on_created, FileCreatedEvent(str(target)))
        for _ in range(50):
            if len(ingestor.collection):
                break
            await asyncio.sleep(0.02)
        assert [n.file_info.path for n in ingestor.collection.query()] == ["v1/getting-started.md"]

        target.unlink()
        await asyncio.to_thread(handler.on_deleted, FileDeletedEvent(str(target)))
        for _ in range(50):
            if not len(ingestor.collection):
                break
            await asyncio.sleep(0.02)
        assert len(ingestor.collection) == 0
