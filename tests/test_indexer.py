"""Tests for Indexer."""

from pathlib import Path

import pytest
from pydantic import BaseModel

from mddb.config import IndexConfig
from mddb.errors import ExtractionError, InputError, SchemaValidationError
from mddb.index.indexer import (
    IndexStats,
    Indexer,
    default_permalinks,
    resolve_root,
    scan_folder,
)
from mddb.index.storage import SQLiteMarkdownStore
from mddb.utils.files import compute_file_id


@pytest.fixture
def store(tmp_path):
    store = SQLiteMarkdownStore(tmp_path / "index.db")
    yield store
    store.close()


def table_counts(store):
    return {table: store.count_rows(table) for table in ("files", "tags", "links", "tasks")}


class BlogWithAuthor(BaseModel):
    author: str


class TestIndexStats:
    """Test IndexStats tracking."""

    def test_init_defaults(self):
        stats = IndexStats()
        assert (stats.inserted, stats.updated, stats.deleted) == (0, 0, 0)
        assert stats.processed_files == []

    def test_increment(self):
        stats = IndexStats()
        path = Path("/tmp/a.md")

        stats.increment("inserted", path)
        stats.increment("updated", path)
        stats.increment("deleted", path)

        assert (stats.inserted, stats.updated, stats.deleted) == (1, 1, 1)
        assert stats.processed_files == [path, path, path]


class TestScanning:
    """Test folder resolution and diffing."""

    def test_resolve_root_missing(self, tmp_path):
        with pytest.raises(InputError, match="Invalid/Missing path"):
            resolve_root(tmp_path / "missing")

    def test_resolve_root_file(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("x")
        with pytest.raises(InputError):
            resolve_root(path)

    def test_scan_folder(self, content_dir):
        stale = str(content_dir / "gone.md")

        scan = scan_folder(content_dir, [], [stale, str(content_dir / "index.mdx")])

        assert len(scan.to_index) == 4
        assert scan.to_delete == [compute_file_id("gone.md")]

    def test_default_permalinks(self, content_dir):
        paths = [content_dir / "index.mdx", content_dir / "notes" / "todo.md"]
        assert default_permalinks(content_dir, paths) == ["index.mdx", "notes/todo.md"]


class TestIndexFolder:
    """Test the full indexing pipeline."""

    def test_first_run(self, store, content_dir):
        stats = Indexer(store).index_folder(content_dir)

        assert stats.inserted == 4
        assert table_counts(store) == {"files": 4, "tags": 5, "links": 5, "tasks": 5}

    def test_records(self, store, content_dir):
        Indexer(store).index_folder(content_dir)

        index = store.get_file(compute_file_id("index.mdx"))
        assert index.metadata["title"] == "Homepage"
        assert index.tags == ["tag1", "tag2"]
        assert [link.to for link in index.links] == ["blog0.mdx"]
        assert [(t.description, t.checked) for t in index.tasks] == [
            ("uncompleted task 2", False),
            ("completed task 1", True),
        ]

        blog = store.get_file(compute_file_id("blog0.mdx"))
        assert blog.filetype == "blog"
        assert blog.tags == ["news", "announcement"]
        assert [(link.to, link.embed) for link in blog.links] == [
            ("index.mdx", False),
            ("image.png", True),
        ]

        todo = store.get_file(compute_file_id("notes/todo.md"))
        assert todo.tags == ["work"]
        assert [link.to for link in todo.links] == ["index.mdx", "https://example.com"]
        taxes = todo.tasks[1]
        assert taxes.checked is True
        assert taxes.due == "2024-04-15"
        assert taxes.metadata == {"priority": "high"}
        flights = todo.tasks[2]
        assert (flights.due, flights.scheduled) == ("2024-06-01", "2024-05-20")

    def test_non_markdown_file_row(self, store, content_dir):
        Indexer(store).index_folder(content_dir)

        image = store.get_file(compute_file_id("image.png"))

        assert image.extension == "png"
        assert image.metadata == {}
        assert image.tags == []

    def test_idempotent(self, store, content_dir):
        indexer = Indexer(store)
        indexer.index_folder(content_dir)
        first = table_counts(store)

        stats = indexer.index_folder(content_dir)

        assert stats.inserted == 0
        assert stats.updated == 4
        assert table_counts(store) == first

    def test_deleted_file_leaves_no_rows(self, store, content_dir):
        indexer = Indexer(store)
        indexer.index_folder(content_dir)
        todo_id = compute_file_id("notes/todo.md")

        (content_dir / "notes" / "todo.md").unlink()
        stats = indexer.index_folder(content_dir)

        assert stats.deleted == 1
        for table in ("files", "tags", "links", "tasks"):
            assert store.count_rows(table, todo_id) == 0

    def test_ignore_patterns(self, store, content_dir):
        Indexer(store, IndexConfig(ignore_patterns=["notes"])).index_folder(content_dir)

        assert store.count_rows("files") == 3
        assert store.get_file(compute_file_id("notes/todo.md")) is None

    def test_single_worker(self, store, content_dir):
        stats = Indexer(store, IndexConfig(workers=1)).index_folder(content_dir)
        assert stats.inserted == 4

    def test_computed_fields_and_resolver(self, store, content_dir):
        def add_title(record, ast):
            record.title = record.metadata.get("title")

        config = IndexConfig(
            computed_fields=[add_title],
            path_to_url_resolver=lambda path: "/" + path.rsplit(".", 1)[0],
        )
        Indexer(store, config).index_folder(content_dir)

        blog = store.get_file(compute_file_id("blog0.mdx"))
        assert blog.title == "First post"
        assert blog.url_path == "/blog0"

    def test_validation_failure_writes_nothing(self, store, content_dir):
        config = IndexConfig(schemas={"blog": BlogWithAuthor})

        with pytest.raises(SchemaValidationError) as excinfo:
            Indexer(store, config).index_folder(content_dir)

        assert list(excinfo.value.failures) == [str(content_dir / "blog0.mdx")]
        assert table_counts(store) == {"files": 0, "tags": 0, "links": 0, "tasks": 0}

    def test_validation_failure_keeps_previous_state(self, store, content_dir):
        Indexer(store).index_folder(content_dir)
        before = table_counts(store)
        (content_dir / "notes" / "todo.md").unlink()

        with pytest.raises(SchemaValidationError):
            Indexer(store, IndexConfig(schemas={"blog": BlogWithAuthor})).index_folder(content_dir)

        assert table_counts(store) == before

    def test_extraction_error_aborts_batch(self, store, content_dir):
        (content_dir / "broken.md").write_text("---\ntitle: [unclosed\n---\nBody\n")

        with pytest.raises(ExtractionError):
            Indexer(store).index_folder(content_dir)

        assert store.count_rows("files") == 0

    def test_missing_folder(self, store, tmp_path):
        with pytest.raises(InputError):
            Indexer(store).index_folder(tmp_path / "missing")
