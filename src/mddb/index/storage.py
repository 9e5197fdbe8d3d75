"""SQLite store for files, tags, links and tasks."""

from __future__ import annotations

import json
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Sequence

from mddb.models import DocumentRecord, Link, Task


@dataclass(slots=True)
class FileQuery:
    """Filters for :meth:`SQLiteMarkdownStore.query_files`; empty filters match everything."""

    ids: Sequence[str] = ()
    filetypes: Sequence[str] = ()
    tags: Sequence[str] = ()
    extensions: Sequence[str] = ()
    folder: str | None = None
    file_path: str | None = None
    url_path: str | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


def _folder_prefix(folder: str | Path) -> str:
    prefix = str(folder)
    return prefix if prefix.endswith(os.sep) else prefix + os.sep


class SQLiteMarkdownStore:
    """Persistence layer for document records and their owned rows."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS files (
                    id TEXT PRIMARY KEY,
                    file_path TEXT NOT NULL UNIQUE,
                    extension TEXT NOT NULL,
                    url_path TEXT,
                    filetype TEXT,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    computed TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tags (
                    file TEXT NOT NULL,
                    tag TEXT NOT NULL,
                    PRIMARY KEY (file, tag),
                    FOREIGN KEY(file) REFERENCES files(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS links (
                    file TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    link_from TEXT NOT NULL,
                    link_to TEXT NOT NULL,
                    to_raw TEXT NOT NULL,
                    text TEXT,
                    internal INTEGER NOT NULL,
                    embed INTEGER NOT NULL,
                    FOREIGN KEY(file) REFERENCES files(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    file TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    description TEXT NOT NULL,
                    checked INTEGER NOT NULL,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    created TEXT,
                    due TEXT,
                    completion TEXT,
                    start TEXT,
                    scheduled TEXT,
                    list TEXT,
                    FOREIGN KEY(file) REFERENCES files(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tags_tag ON tags(tag)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_links_file ON links(file)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_links_to ON links(link_to)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_file ON tasks(file)")

    # -- writes (callers hold a transaction) -------------------------------

    def _write_file(self, record: DocumentRecord) -> str:
        conn = self._conn
        existing = conn.execute("SELECT id FROM files WHERE id = ?", (record.id,)).fetchone()

        # A row for the same path under another id comes from indexing a different root.
        conn.execute(
            "DELETE FROM files WHERE file_path = ? AND id != ?", (record.file_path, record.id)
        )
        self._delete_children(record.id)

        conn.execute(
            """
            INSERT INTO files(id, file_path, extension, url_path, filetype, metadata, computed)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                file_path = excluded.file_path,
                extension = excluded.extension,
                url_path = excluded.url_path,
                filetype = excluded.filetype,
                metadata = excluded.metadata,
                computed = excluded.computed,
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                record.id,
                record.file_path,
                record.extension,
                record.url_path,
                record.filetype,
                json.dumps(record.metadata, ensure_ascii=False, default=str),
                json.dumps(record.extra_fields(), ensure_ascii=False, default=str),
            ),
        )
        conn.executemany(
            "INSERT OR IGNORE INTO tags(file, tag) VALUES (?, ?)",
            [(record.id, str(tag)) for tag in record.tags],
        )
        conn.executemany(
            """
            INSERT INTO links(file, position, link_from, link_to, to_raw, text, internal, embed)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    record.id,
                    position,
                    link.from_,
                    link.to,
                    link.to_raw,
                    link.text,
                    int(link.internal),
                    int(link.embed),
                )
                for position, link in enumerate(record.links)
            ],
        )
        conn.executemany(
            """
            INSERT INTO tasks(file, position, description, checked, metadata,
                              created, due, completion, start, scheduled, list)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    record.id,
                    position,
                    task.description,
                    int(task.checked),
                    json.dumps(task.metadata, ensure_ascii=False, default=str),
                    task.created,
                    task.due,
                    task.completion,
                    task.start,
                    task.scheduled,
                    task.list,
                )
                for position, task in enumerate(record.tasks)
            ],
        )
        return "updated" if existing else "inserted"

    def _delete_children(self, file_id: str) -> None:
        for table in ("tags", "links", "tasks"):
            self._conn.execute(f"DELETE FROM {table} WHERE file = ?", (file_id,))

    def _delete_file(self, file_id: str) -> bool:
        self._delete_children(file_id)
        cursor = self._conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
        return cursor.rowcount > 0

    # -- public API ----------------------------------------------------------

    def upsert_file(self, record: DocumentRecord) -> str:
        """Replace the file row and every tag/link/task it owns.

        Returns ``"inserted"`` or ``"updated"``.
        """
        with self.transaction():
            return self._write_file(record)

    def delete_file(self, file_id: str) -> bool:
        with self.transaction():
            return self._delete_file(file_id)

    def sync(
        self, records: Iterable[DocumentRecord], delete_ids: Iterable[str] = ()
    ) -> Dict[str, str]:
        """Apply deletions and upserts as a single unit of work.

        Returns a mapping of file path to ``inserted``/``updated``/``deleted``.
        """
        statuses: Dict[str, str] = {}
        with self.transaction():
            for file_id in delete_ids:
                row = self._conn.execute(
                    "SELECT file_path FROM files WHERE id = ?", (file_id,)
                ).fetchone()
                if self._delete_file(file_id) and row is not None:
                    statuses[row["file_path"]] = "deleted"
            for record in records:
                statuses[record.file_path] = self._write_file(record)
        return statuses

    def list_file_paths(self, root_folder: str | Path | None = None) -> set[str]:
        """Return stored file paths, optionally only those under ``root_folder``."""
        if root_folder is None:
            rows = self._conn.execute("SELECT file_path FROM files").fetchall()
        else:
            prefix = _folder_prefix(root_folder)
            rows = self._conn.execute(
                "SELECT file_path FROM files WHERE substr(file_path, 1, ?) = ?",
                (len(prefix), prefix),
            ).fetchall()
        return {row["file_path"] for row in rows}

    def query_files(self, query: FileQuery | None = None) -> List[DocumentRecord]:
        query = query or FileQuery()
        clauses: List[str] = []
        params: List[Any] = []

        if query.ids:
            clauses.append(f"f.id IN ({_placeholders(query.ids)})")
            params.extend(query.ids)
        if query.filetypes:
            clauses.append(f"f.filetype IN ({_placeholders(query.filetypes)})")
            params.extend(query.filetypes)
        if query.extensions:
            clauses.append(f"f.extension IN ({_placeholders(query.extensions)})")
            params.extend(ext.lstrip(".").lower() for ext in query.extensions)
        if query.tags:
            clauses.append(
                f"f.id IN (SELECT file FROM tags WHERE tag IN ({_placeholders(query.tags)}))"
            )
            params.extend(query.tags)
        if query.folder is not None:
            prefix = _folder_prefix(query.folder)
            clauses.append("substr(f.file_path, 1, ?) = ?")
            params.extend([len(prefix), prefix])
        if query.file_path is not None:
            clauses.append("f.file_path = ?")
            params.append(query.file_path)
        if query.url_path is not None:
            clauses.append("f.url_path = ?")
            params.append(query.url_path)
        for key, value in query.metadata.items():
            clauses.append("json_extract(f.metadata, ?) = ?")
            params.extend([f'$."{key}"', value])

        sql = "SELECT f.* FROM files f"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY f.file_path"

        rows = self._conn.execute(sql, params).fetchall()
        return [self._record_from_row(row) for row in rows]

    def get_file(self, file_id: str) -> DocumentRecord | None:
        records = self.query_files(FileQuery(ids=[file_id]))
        return records[0] if records else None

    def list_tags(self) -> List[str]:
        rows = self._conn.execute("SELECT DISTINCT tag FROM tags ORDER BY tag").fetchall()
        return [row["tag"] for row in rows]

    def forward_links(self, file_id: str) -> List[Link]:
        rows = self._conn.execute(
            "SELECT * FROM links WHERE file = ? ORDER BY position", (file_id,)
        ).fetchall()
        return [self._link_from_row(row) for row in rows]

    def backward_links(self, file_id: str) -> List[Link]:
        """Links from other files whose target is this file's URL or relative path."""
        row = self._conn.execute(
            "SELECT url_path FROM files WHERE id = ?", (file_id,)
        ).fetchone()
        if row is None or row["url_path"] is None:
            return []
        rows = self._conn.execute(
            """
            SELECT * FROM links
            WHERE internal = 1 AND file != ? AND link_to = ?
            ORDER BY link_from, position
            """,
            (file_id, row["url_path"]),
        ).fetchall()
        return [self._link_from_row(link_row) for link_row in rows]

    def count_rows(self, table: str, file_id: str | None = None) -> int:
        if table not in ("files", "tags", "links", "tasks"):
            raise ValueError(f"Unknown table: {table}")
        if file_id is None:
            return self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        column = "id" if table == "files" else "file"
        return self._conn.execute(
            f"SELECT COUNT(*) FROM {table} WHERE {column} = ?", (file_id,)
        ).fetchone()[0]

    # -- row mapping -----------------------------------------------------------

    @staticmethod
    def _link_from_row(row: sqlite3.Row) -> Link:
        return Link(
            from_=row["link_from"],
            to=row["link_to"],
            to_raw=row["to_raw"],
            text=row["text"] or "",
            internal=bool(row["internal"]),
            embed=bool(row["embed"]),
        )

    def _record_from_row(self, row: sqlite3.Row) -> DocumentRecord:
        conn = self._conn
        file_id = row["id"]
        tags = [
            r["tag"]
            for r in conn.execute("SELECT tag FROM tags WHERE file = ? ORDER BY rowid", (file_id,))
        ]
        tasks = [
            Task(
                description=r["description"],
                checked=bool(r["checked"]),
                metadata=json.loads(r["metadata"]) if r["metadata"] else {},
                created=r["created"],
                due=r["due"],
                completion=r["completion"],
                start=r["start"],
                scheduled=r["scheduled"],
                list=r["list"],
            )
            for r in conn.execute(
                "SELECT * FROM tasks WHERE file = ? ORDER BY position", (file_id,)
            )
        ]
        record = DocumentRecord(
            id=file_id,
            file_path=row["file_path"],
            url_path=row["url_path"],
            extension=row["extension"],
            filetype=row["filetype"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            tags=tags,
            links=self.forward_links(file_id),
            tasks=tasks,
        )
        computed = json.loads(row["computed"]) if row["computed"] else {}
        for key, value in computed.items():
            setattr(record, key, value)
        return record
