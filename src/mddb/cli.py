"""Command line interface for mddb."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mddb.config import AppConfig, IndexConfig, load_config
from mddb.db import MarkdownDB
from mddb.errors import MddbError, SchemaValidationError
from mddb.index.document import ProcessOptions, process_markdown
from mddb.web.app import app as web_app


console = Console()
err_console = Console(stderr=True)
app = typer.Typer(help="mddb - index Markdown content into a queryable SQLite database")

MARKDOWN_SUFFIXES = (".md", ".markdown", ".mdx")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)
    return typer.Exit(code=1)


def _print_single_file(path: Path) -> None:
    if path.suffix.lower() not in MARKDOWN_SUFFIXES:
        err_console.print("Is this a markdown file? Expected .md, .markdown, or .mdx.")

    with path.open("rb") as handle:
        record = process_markdown(
            handle, ProcessOptions(file_path=path, root_folder=path.parent)
        )
    typer.echo(json.dumps(record.to_dict(), indent=2, ensure_ascii=False, default=str))


@app.command()
def index(
    content_path: Optional[Path] = typer.Argument(
        None, help="Folder of Markdown content, or a single Markdown file."
    ),
    config_path: Optional[Path] = typer.Argument(
        None, help="Python module declaring computed_fields, schemas, ..."
    ),
    watch: bool = typer.Option(False, "--watch", help="Keep watching for changes"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index a content folder (or print the record for a single file)."""
    _setup_logging(verbose)
    if content_path is None:
        raise _fail("Invalid/Missing path to markdown content folder")

    resolved_content = content_path.expanduser().resolve()
    if not resolved_content.exists():
        raise _fail(f"Invalid/Missing path to markdown content folder: {content_path}")

    if resolved_content.is_file():
        try:
            _print_single_file(resolved_content)
        except (MddbError, OSError) as exc:
            raise _fail(str(exc))
        return

    try:
        custom_config = load_config(config_path) if config_path is not None else IndexConfig()
    except MddbError as exc:
        raise _fail(str(exc))

    app_config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = app_config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    console.print(f"Indexing into [bold]{resolved_db}[/bold]...")
    with MarkdownDB(resolved_db).init() as mddb:
        watcher = None
        if watch:
            # Start observing first so edits made during the scan are not missed.
            watcher = mddb.watcher(
                resolved_content,
                config=custom_config,
                ignore_patterns=app_config.ignore_patterns,
            )
            watcher.start()
        try:
            stats = mddb.index_folder(
                resolved_content,
                ignore_patterns=app_config.ignore_patterns,
                config=custom_config,
            )
        except SchemaValidationError as exc:
            for file_path, error in exc.failures.items():
                err_console.print(
                    f"[yellow]{escape(file_path)}[/yellow]: {escape(error)}", soft_wrap=True
                )
            raise _fail(str(exc))
        except MddbError as exc:
            raise _fail(str(exc))

        console.print(
            f"Inserted: {stats.inserted}, updated: {stats.updated}, deleted: {stats.deleted}"
        )
        if watcher is not None:
            console.print("Watching for changes, press Ctrl+C to stop.")
            try:
                watcher.run()
            except KeyboardInterrupt:
                watcher.stop()


@app.command()
def query(
    filetype: List[str] = typer.Option([], "--filetype", help="Only files of this type"),
    tag: List[str] = typer.Option([], "--tag", help="Only files carrying this tag"),
    extension: List[str] = typer.Option([], "--extension", help="Only files with this extension"),
    folder: Optional[Path] = typer.Option(None, "--folder", help="Only files under this folder"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON"),
) -> None:
    """List indexed files."""
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    with MarkdownDB(resolved_db).init() as mddb:
        records = mddb.get_files(filetypes=filetype, tags=tag, extensions=extension, folder=folder)

    if as_json:
        typer.echo(
            json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False, default=str)
        )
        return

    if not records:
        console.print("[yellow]No matching files.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("URL")
    table.add_column("Type")
    table.add_column("Tags")
    table.add_column("Links")
    table.add_column("Tasks")

    for record in records:
        table.add_row(
            record.url_path,
            record.filetype or "",
            ", ".join(record.tags),
            str(len(record.links)),
            str(len(record.tasks)),
        )

    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Serve the read-only query API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Warning: database not found, queries will fail.[/yellow]")

    web_app.state.db_path = resolved_db
    console.print(f"Serving {resolved_db} on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
