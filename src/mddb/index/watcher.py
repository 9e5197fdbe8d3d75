"""Watch mode: keep the store in sync with a folder as files change.

watchdog callbacks only enqueue :class:`FileEvent` objects; a single
consumer applies them one at a time in arrival order, so two events never
write rows for the same file concurrently.
"""

from __future__ import annotations

import enum
import logging
import os
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from mddb.config import IndexConfig
from mddb.errors import ExtractionError, InputError, SchemaValidationError
from mddb.index.document import ProcessOptions, file_id_for_path, process_file
from mddb.index.schema import validate_record
from mddb.index.storage import SQLiteMarkdownStore
from mddb.utils.files import compile_patterns, is_ignored, iter_content_paths, relative_posix

LOGGER = logging.getLogger(__name__)


class WatchState(str, enum.Enum):
    IDLE = "idle"
    WATCHING = "watching"
    SYNCING = "syncing"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class FileEvent:
    kind: str  # created | modified | deleted | moved
    path: Path
    dest_path: Path | None = None
    is_directory: bool = False


class _QueueingHandler(FileSystemEventHandler):
    def __init__(self, watcher: "FolderWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def _push(self, kind: str, event: FileSystemEvent) -> None:
        dest = getattr(event, "dest_path", "") or None
        self._watcher.enqueue(
            FileEvent(
                kind=kind,
                path=Path(os.fsdecode(event.src_path)),
                dest_path=Path(os.fsdecode(dest)) if dest else None,
                is_directory=event.is_directory,
            )
        )

    def on_created(self, event: FileSystemEvent) -> None:
        self._push("created", event)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._push("modified", event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._push("deleted", event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._push("moved", event)


class FolderWatcher:
    """Apply file-system events for one indexed root to the store."""

    def __init__(
        self,
        store: SQLiteMarkdownStore,
        root: Path,
        config: IndexConfig | None = None,
        *,
        permalinks: Sequence[str] | None = None,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self.store = store
        self.root = Path(root)
        self.config = config or IndexConfig()
        self.permalinks: List[str] | None = list(permalinks) if permalinks is not None else None
        self.state = WatchState.IDLE
        self.event_handler = _QueueingHandler(self)
        self._patterns = compile_patterns(self.config.ignore_patterns)
        self._events: "queue.Queue[FileEvent]" = queue.Queue()
        self._stop = threading.Event()
        # Held while one event is applied; stop() takes it so shutdown waits for that event.
        self._apply_lock = threading.RLock()
        self._observer_factory = observer_factory
        self._observer: Any = None

    # -- lifecycle -------------------------------------------------------------

    def start(self) -> None:
        if self._observer is not None:
            return
        self._observer = self._observer_factory()
        self._observer.schedule(self.event_handler, str(self.root), recursive=True)
        self._observer.start()
        self.state = WatchState.WATCHING
        LOGGER.info("Watching %s for changes", self.root)

    def stop(self) -> None:
        """Stop observing; returns once the event being applied (if any) is done."""
        self._stop.set()
        if self._observer is not None:
            self._observer.stop()
            if self._observer.is_alive():
                self._observer.join()
            self._observer = None
        with self._apply_lock:
            self.state = WatchState.STOPPED

    def run(self, poll_interval: float = 0.5) -> None:
        """Block, applying events until :meth:`stop` is called."""
        self.start()
        try:
            while not self._stop.is_set():
                try:
                    event = self._events.get(timeout=poll_interval)
                except queue.Empty:
                    continue
                self.apply(event)
        finally:
            self.stop()

    # -- event handling ----------------------------------------------------------

    def enqueue(self, event: FileEvent) -> None:
        self._events.put(event)

    def process_pending(self) -> int:
        """Apply every queued event without blocking; returns how many ran."""
        processed = 0
        while not self._stop.is_set():
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            self.apply(event)
            processed += 1
        return processed

    def apply(self, event: FileEvent) -> None:
        with self._apply_lock:
            if self._stop.is_set():
                LOGGER.debug("Watcher stopped, dropping %s event for %s", event.kind, event.path)
                return
            self._apply(event)

    def _apply(self, event: FileEvent) -> None:
        self.state = WatchState.SYNCING
        try:
            if event.kind == "moved":
                self._remove(event.path, event.is_directory)
                if event.dest_path is not None:
                    self._add(event.dest_path, event.is_directory)
            elif event.kind == "deleted":
                self._remove(event.path, event.is_directory)
            elif event.kind in ("created", "modified"):
                self._add(event.path, event.is_directory)
            else:
                LOGGER.warning("Ignoring unknown event kind %r for %s", event.kind, event.path)
        finally:
            if self.state is WatchState.SYNCING:
                self.state = WatchState.WATCHING

    def _ignored(self, path: Path) -> bool:
        return is_ignored(path, self._patterns)

    def _add(self, path: Path, is_directory: bool) -> None:
        if self._ignored(path):
            LOGGER.debug("Ignored event for %s", path)
            return
        if is_directory or path.is_dir():
            for child in iter_content_paths(path, self._patterns):
                self._sync_file(child)
            return
        self._sync_file(path)

    def _sync_file(self, path: Path) -> None:
        if not path.is_file():
            return
        relative = relative_posix(path, self.root)
        if self.permalinks is not None and relative not in self.permalinks:
            self.permalinks.append(relative)
        options = ProcessOptions.from_config(
            self.config, file_path=path, root_folder=self.root, permalinks=self.permalinks
        )
        try:
            record = process_file(path, options)
            validate_record(record, self.config.schemas)
        except (ExtractionError, SchemaValidationError, InputError) as exc:
            LOGGER.error("Skipping %s, stored state left unchanged: %s", path, exc)
            return
        except Exception:
            # Failures in user code (computed fields, extractors) stay isolated to this file.
            LOGGER.exception("Skipping %s, stored state left unchanged", path)
            return
        status = self.store.upsert_file(record)
        LOGGER.info("%s %s", status.capitalize(), relative)

    def _remove(self, path: Path, is_directory: bool) -> None:
        if self._ignored(path):
            return
        if is_directory:
            targets = sorted(self.store.list_file_paths(path))
        else:
            targets = [str(path)]
        for target in targets:
            if self.store.delete_file(file_id_for_path(target, self.root)):
                LOGGER.info("Deleted %s", relative_posix(target, self.root))
            if self.permalinks is not None:
                relative = relative_posix(target, self.root)
                if relative in self.permalinks:
                    self.permalinks.remove(relative)
