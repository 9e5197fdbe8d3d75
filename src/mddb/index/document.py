"""Document building: identity resolution, facet extraction and computed fields."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence

from mddb.config import ComputedField, IndexConfig, PathToUrlResolver, identity_url_resolver
from mddb.errors import InputError
from mddb.ingestion.parser import ExtractionContext, ParsedFile, parse_file
from mddb.models import SUPPORTED_EXTENSIONS, DocumentRecord, Link, Task
from mddb.utils.files import compute_file_id, relative_posix
from mddb.utils.text import MarkdownInput, read_markdown_input

LOGGER = logging.getLogger(__name__)

IN_MEMORY_PATH = "<memory>"

FacetExtractor = Callable[[str, ExtractionContext], ParsedFile]


@dataclass(slots=True)
class ProcessOptions:
    file_path: str | Path | None = None
    root_folder: str | Path | None = None
    path_to_url_resolver: PathToUrlResolver = identity_url_resolver
    permalinks: Sequence[str] | None = None
    computed_fields: Sequence[ComputedField] = ()
    parser_plugins: Sequence[Any] = ()
    extractors: Dict[str, Callable[..., Any]] = field(default_factory=dict)
    facet_extractor: FacetExtractor = parse_file

    @classmethod
    def from_config(
        cls,
        config: IndexConfig,
        *,
        file_path: str | Path | None = None,
        root_folder: str | Path | None = None,
        permalinks: Sequence[str] | None = None,
    ) -> "ProcessOptions":
        return cls(
            file_path=file_path,
            root_folder=root_folder,
            path_to_url_resolver=config.path_to_url_resolver,
            permalinks=permalinks if permalinks is not None else config.permalinks,
            computed_fields=list(config.computed_fields),
            parser_plugins=list(config.parser_plugins),
            extractors=dict(config.extractors),
        )


@dataclass(slots=True)
class Identity:
    id: str
    file_path: str
    relative_path: str
    url_path: str
    extension: str


def resolve_identity(source: str, options: ProcessOptions) -> Identity:
    """Derive id, relative path, URL and extension for a document.

    The id hashes the root-relative path, so edits keep the same id; only
    documents without a path fall back to hashing their content.
    """
    if options.file_path is not None:
        file_path = str(options.file_path)
        relative_path = relative_posix(file_path, options.root_folder)
        extension = Path(relative_path).suffix.lstrip(".").lower()
        file_id = compute_file_id(relative_path)
    else:
        file_path = relative_path = IN_MEMORY_PATH
        extension = "md"
        file_id = compute_file_id(source)

    return Identity(
        id=file_id,
        file_path=file_path,
        relative_path=relative_path,
        url_path=options.path_to_url_resolver(relative_path),
        extension=extension,
    )


def file_id_for_path(file_path: str | Path, root_folder: str | Path | None) -> str:
    return compute_file_id(relative_posix(file_path, root_folder))


def build_document(source: str, options: ProcessOptions | None = None) -> DocumentRecord:
    options = options or ProcessOptions()
    identity = resolve_identity(source, options)

    record = DocumentRecord(
        id=identity.id,
        file_path=identity.file_path,
        url_path=identity.url_path,
        extension=identity.extension,
    )
    if identity.extension not in SUPPORTED_EXTENSIONS:
        return record

    parsed = options.facet_extractor(
        source,
        ExtractionContext(
            from_path=identity.relative_path,
            permalinks=options.permalinks,
            parser_plugins=options.parser_plugins,
            extractors=options.extractors,
        ),
    )

    metadata = parsed.metadata or {}
    record.metadata = metadata
    record.links = [link if isinstance(link, Link) else Link.from_dict(link) for link in parsed.links]
    filetype = metadata.get("type")
    record.filetype = str(filetype) if filetype not in (None, "") else None
    record.tags = list(metadata.get("tags") or [])

    # Computed fields run before tasks are attached.
    for computed_field in options.computed_fields:
        computed_field(record, parsed.ast)

    record.tasks = _tasks_from_metadata(metadata.get("tasks"))
    return record


def _tasks_from_metadata(raw_tasks: Any) -> List[Task]:
    if not raw_tasks:
        return []
    return [task if isinstance(task, Task) else Task.from_dict(task) for task in raw_tasks]


def process_markdown(source: MarkdownInput, options: ProcessOptions | None = None) -> DocumentRecord:
    """Drain ``source`` and build its :class:`DocumentRecord`."""
    return build_document(read_markdown_input(source), options)


def process_file(path: Path, options: ProcessOptions) -> DocumentRecord:
    """Read ``path`` from disk and build its record."""
    if path.suffix.lstrip(".").lower() not in SUPPORTED_EXTENSIONS:
        # Bare record: identity never depends on the content of a path-backed file.
        return build_document("", options)
    try:
        with path.open("rb") as handle:
            source = read_markdown_input(handle)
    except OSError as exc:
        raise InputError(f"Unable to read {path}: {exc}") from exc
    return build_document(source, options)
