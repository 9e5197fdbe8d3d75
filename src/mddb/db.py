"""High-level API: open a store, index folders and query the results."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence

from mddb.config import IndexConfig
from mddb.index.indexer import IndexStats, Indexer, default_permalinks, resolve_root
from mddb.index.storage import FileQuery, SQLiteMarkdownStore
from mddb.index.watcher import FolderWatcher
from mddb.models import DocumentRecord, Link
from mddb.utils.files import compile_patterns, iter_content_paths

LOGGER = logging.getLogger(__name__)


class MarkdownDB:
    """Owns the store handle for one database file.

    Use as a context manager, or call :meth:`init` and :meth:`close`::

        with MarkdownDB("markdown.db").init() as mddb:
            mddb.index_folder("content")
            posts = mddb.get_files(filetypes=["blog"])
    """

    def __init__(self, db_path: Path | str, config: IndexConfig | None = None) -> None:
        self.db_path = Path(db_path)
        self.config = config or IndexConfig()
        self._store: SQLiteMarkdownStore | None = None
        self._watcher: FolderWatcher | None = None

    def init(self) -> "MarkdownDB":
        """Open (or create) the database; idempotent."""
        if self._store is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._store = SQLiteMarkdownStore(self.db_path)
            LOGGER.debug("Opened database %s", self.db_path)
        return self

    @property
    def store(self) -> SQLiteMarkdownStore:
        if self._store is None:
            raise RuntimeError("MarkdownDB is not initialised; call init() first")
        return self._store

    def close(self) -> None:
        self.stop_watching()
        if self._store is not None:
            self._store.close()
            self._store = None

    def __enter__(self) -> "MarkdownDB":
        return self.init()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- indexing ----------------------------------------------------------------

    def _effective_config(
        self, config: IndexConfig | None, ignore_patterns: Sequence[str] | None
    ) -> IndexConfig:
        effective = self.config.merged_with(config)
        if ignore_patterns:
            effective.ignore_patterns.extend(ignore_patterns)
        # Never index the store's own files (db, -wal, -shm, -journal).
        effective.ignore_patterns.append(re.escape(str(self.db_path.resolve())))
        return effective

    def index_folder(
        self,
        folder: Path | str,
        *,
        ignore_patterns: Sequence[str] | None = None,
        watch: bool = False,
        config: IndexConfig | None = None,
    ) -> IndexStats:
        """Index ``folder``; with ``watch`` keep syncing until :meth:`stop_watching`.

        The observer starts before the initial scan, so changes made while the
        scan runs are queued and applied afterwards.
        """
        watcher = (
            self.watcher(folder, config=config, ignore_patterns=ignore_patterns) if watch else None
        )
        if watcher is not None:
            watcher.start()
        effective = self._effective_config(config, ignore_patterns)
        try:
            stats = Indexer(self.store, effective).index_folder(folder)
        except Exception:
            self.stop_watching()
            raise
        if watcher is not None:
            watcher.run()
        return stats

    def watcher(
        self,
        folder: Path | str,
        *,
        config: IndexConfig | None = None,
        ignore_patterns: Sequence[str] | None = None,
    ) -> FolderWatcher:
        root = resolve_root(folder)
        effective = self._effective_config(config, ignore_patterns)
        permalinks = effective.permalinks
        if permalinks is None:
            patterns = compile_patterns(effective.ignore_patterns)
            permalinks = default_permalinks(root, iter_content_paths(root, patterns))
        self._watcher = FolderWatcher(self.store, root, effective, permalinks=permalinks)
        return self._watcher

    def stop_watching(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    # -- queries -------------------------------------------------------------------

    def get_files(
        self,
        *,
        filetypes: Sequence[str] = (),
        tags: Sequence[str] = (),
        extensions: Sequence[str] = (),
        folder: Path | str | None = None,
        metadata: Dict[str, Any] | None = None,
    ) -> List[DocumentRecord]:
        return self.store.query_files(
            FileQuery(
                filetypes=list(filetypes),
                tags=list(tags),
                extensions=list(extensions),
                folder=str(Path(folder).resolve()) if folder is not None else None,
                metadata=dict(metadata or {}),
            )
        )

    def get_file_by_id(self, file_id: str) -> DocumentRecord | None:
        return self.store.get_file(file_id)

    def get_file_by_url(self, url_path: str) -> DocumentRecord | None:
        records = self.store.query_files(FileQuery(url_path=url_path))
        return records[0] if records else None

    def get_tags(self) -> List[str]:
        return self.store.list_tags()

    def get_links(self, file_id: str, direction: str = "forward") -> List[Link]:
        """Links going out of (``forward``) or pointing at (``backward``) a file."""
        if direction == "forward":
            return self.store.forward_links(file_id)
        if direction == "backward":
            return self.store.backward_links(file_id)
        raise ValueError(f"Unknown link direction: {direction}")
