"""mddb - index folders of Markdown/MDX into a queryable SQLite database."""

from mddb.config import AppConfig, IndexConfig, load_config
from mddb.db import MarkdownDB
from mddb.errors import (
    ExtractionError,
    InputError,
    MddbError,
    SchemaValidationError,
    StoreError,
)
from mddb.index.document import ProcessOptions, build_document, process_markdown
from mddb.models import DocumentRecord, Link, Task

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "DocumentRecord",
    "ExtractionError",
    "IndexConfig",
    "InputError",
    "Link",
    "MarkdownDB",
    "MddbError",
    "ProcessOptions",
    "SchemaValidationError",
    "StoreError",
    "Task",
    "build_document",
    "load_config",
    "process_markdown",
]
