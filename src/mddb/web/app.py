"""FastAPI application exposing read-only queries over an index."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from mddb.config import AppConfig
from mddb.db import MarkdownDB

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="mddb", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _resolve_db_path(db: Path | None) -> Path:
    if db is None:
        db = getattr(app.state, "db_path", None)
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    return config.resolve_db_path(Path.cwd())


@contextmanager
def _open_db(db: Path | None) -> Iterator[MarkdownDB]:
    resolved_db = _resolve_db_path(db)
    LOGGER.debug("Serving query from %s", resolved_db)
    if not resolved_db.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Database not found at {resolved_db}. Run 'mddb index <folder>' first.",
        )
    with MarkdownDB(resolved_db) as mddb:
        yield mddb


@app.get("/files")
async def list_files(
    filetype: List[str] = Query(default=[]),
    tag: List[str] = Query(default=[]),
    extension: List[str] = Query(default=[]),
    db: Path | None = None,
) -> dict[str, Any]:
    with _open_db(db) as mddb:
        records = mddb.get_files(filetypes=filetype, tags=tag, extensions=extension)
    return {"files": [record.to_dict() for record in records]}


@app.get("/files/{file_id}")
async def get_file(file_id: str, db: Path | None = None) -> dict[str, Any]:
    with _open_db(db) as mddb:
        record = mddb.get_file_by_id(file_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"File with ID {file_id} not found")
    return record.to_dict()


@app.get("/files/{file_id}/links")
async def get_links(
    file_id: str, direction: str = "forward", db: Path | None = None
) -> dict[str, Any]:
    if direction not in ("forward", "backward"):
        raise HTTPException(status_code=400, detail="direction must be 'forward' or 'backward'")
    with _open_db(db) as mddb:
        if mddb.get_file_by_id(file_id) is None:
            raise HTTPException(status_code=404, detail=f"File with ID {file_id} not found")
        links = mddb.get_links(file_id, direction=direction)
    return {"links": [link.to_dict() for link in links]}


@app.get("/tags")
async def list_tags(db: Path | None = None) -> dict[str, List[str]]:
    with _open_db(db) as mddb:
        return {"tags": mddb.get_tags()}


@app.get("/url/{url_path:path}")
async def get_file_by_url(url_path: str, db: Path | None = None) -> dict[str, Any]:
    with _open_db(db) as mddb:
        record = mddb.get_file_by_url(url_path)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No file at URL {url_path}")
    return record.to_dict()
