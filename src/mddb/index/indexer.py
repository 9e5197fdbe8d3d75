"""Folder indexing pipeline: scan, diff, build, validate, commit."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence

from mddb.config import IndexConfig
from mddb.errors import InputError
from mddb.index.document import ProcessOptions, file_id_for_path, process_file
from mddb.index.schema import validate_records
from mddb.index.storage import SQLiteMarkdownStore
from mddb.models import DocumentRecord
from mddb.utils.files import compile_patterns, iter_content_paths, relative_posix

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanResult:
    to_index: List[Path] = field(default_factory=list)
    to_delete: List[str] = field(default_factory=list)


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def increment(self, status: str, path: Path) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "deleted":
            self.deleted += 1
        self.processed_files.append(path)


def resolve_root(folder: Path | str) -> Path:
    root = Path(folder).expanduser().resolve()
    if not root.is_dir():
        raise InputError(f"Invalid/Missing path to markdown content folder: {folder}")
    return root


def scan_folder(
    root: Path, ignore_patterns: Sequence[str] = (), stored_paths: Iterable[str] = ()
) -> ScanResult:
    """Diff the files on disk against the stored file set.

    Every current file is re-indexed; stored paths that are gone (or now
    ignored) are returned as ids to delete.
    """
    patterns = compile_patterns(ignore_patterns)
    current = list(iter_content_paths(root, patterns))
    current_set = {str(path) for path in current}
    stale = sorted(set(stored_paths) - current_set)
    return ScanResult(
        to_index=current,
        to_delete=[file_id_for_path(path, root) for path in stale],
    )


def default_permalinks(root: Path, paths: Iterable[Path]) -> List[str]:
    return [relative_posix(path, root) for path in paths]


class Indexer:
    """Coordinates scanning, building and persisting a content folder."""

    def __init__(self, store: SQLiteMarkdownStore, config: IndexConfig | None = None) -> None:
        self.store = store
        self.config = config or IndexConfig()

    def options_for(self, root: Path, path: Path, permalinks: Sequence[str] | None) -> ProcessOptions:
        return ProcessOptions.from_config(
            self.config, file_path=path, root_folder=root, permalinks=permalinks
        )

    def build_records(
        self, root: Path, paths: Sequence[Path], permalinks: Sequence[str] | None
    ) -> List[DocumentRecord]:
        """Build every record; the first failure aborts the whole batch."""
        workers = max(1, min(self.config.workers, len(paths) or 1))

        def build(path: Path) -> DocumentRecord:
            LOGGER.debug("Processing: %s", path)
            return process_file(path, self.options_for(root, path, permalinks))

        if workers == 1:
            return [build(path) for path in paths]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(build, paths))

    def index_folder(self, folder: Path | str) -> IndexStats:
        """Synchronise the store with ``folder``; all-or-nothing."""
        root = resolve_root(folder)
        scan = scan_folder(
            root, self.config.ignore_patterns, self.store.list_file_paths(root)
        )
        if not scan.to_index:
            LOGGER.warning("No files found in %s", root)

        permalinks = self.config.permalinks
        if permalinks is None:
            permalinks = default_permalinks(root, scan.to_index)

        records = self.build_records(root, scan.to_index, permalinks)
        validate_records(records, self.config.schemas)

        statuses = self.store.sync(records, scan.to_delete)
        stats = IndexStats()
        for file_path, status in statuses.items():
            stats.increment(status, Path(file_path))
        LOGGER.info(
            "Indexed %s: %d inserted, %d updated, %d deleted",
            root,
            stats.inserted,
            stats.updated,
            stats.deleted,
        )
        return stats
