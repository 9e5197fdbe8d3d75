"""Facet extraction for Markdown/MDX sources.

Front matter is decoded with python-frontmatter and the body is parsed with
markdown-it-py. The resulting syntax tree is scanned for tags, links and
tasks; extra named extractors can add more metadata keys.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Sequence

import frontmatter
import yaml
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from mddb.errors import ExtractionError
from mddb.ingestion.links import extract_links
from mddb.ingestion.tags import extract_body_tags, merge_tags, normalize_tags
from mddb.ingestion.tasks import extract_tasks
from mddb.models import Link

LOGGER = logging.getLogger(__name__)

Extractor = Callable[[SyntaxTreeNode, "ExtractionContext"], Any]


@dataclass(slots=True)
class ExtractionContext:
    from_path: str
    permalinks: Sequence[str] | None = None
    parser_plugins: Sequence[Any] = ()
    extractors: Mapping[str, Extractor] = field(default_factory=dict)


@dataclass(slots=True)
class ParsedFile:
    ast: SyntaxTreeNode
    metadata: Dict[str, Any]
    links: List[Link]


def to_jsonable(value: Any) -> Any:
    """Convert YAML-native values (dates, sets, tuples) into JSON-compatible ones."""
    if isinstance(value, (dt.date, dt.datetime, dt.time)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(item) for item in value]
    return value


def create_markdown_parser(plugins: Sequence[Any] = ()) -> MarkdownIt:
    """Build a CommonMark parser with GFM tables and strikethrough.

    Each plugin is a markdown-it plugin callable, or a ``(plugin, options)`` pair.
    """
    md = MarkdownIt("commonmark").enable(["table", "strikethrough"])
    for plugin in plugins:
        if isinstance(plugin, tuple):
            plugin, options = plugin
            md.use(plugin, **options)
        else:
            md.use(plugin)
    return md


def split_front_matter(source: str, from_path: str) -> tuple[Dict[str, Any], str]:
    try:
        metadata, body = frontmatter.parse(source)
    except (yaml.YAMLError, ValueError, TypeError) as exc:
        raise ExtractionError(
            f"Invalid front matter in {from_path}: {exc}", file_path=from_path
        ) from exc
    return to_jsonable(dict(metadata)), body


def parse_file(source: str, context: ExtractionContext) -> ParsedFile:
    """Extract metadata, links and the syntax tree from a Markdown source."""
    metadata, body = split_front_matter(source, context.from_path)

    try:
        md = create_markdown_parser(context.parser_plugins)
        ast = SyntaxTreeNode(md.parse(body))
    except Exception as exc:
        raise ExtractionError(
            f"Unable to parse {context.from_path}: {exc}", file_path=context.from_path
        ) from exc

    links = extract_links(ast, context.from_path, context.permalinks)
    metadata["tags"] = merge_tags(normalize_tags(metadata.get("tags")), extract_body_tags(ast))
    metadata["tasks"] = [task.to_dict() for task in extract_tasks(ast)]

    for name, extractor in context.extractors.items():
        try:
            value = extractor(ast, context)
        except Exception as exc:
            raise ExtractionError(
                f"Extractor '{name}' failed on {context.from_path}: {exc}",
                file_path=context.from_path,
            ) from exc
        if name == "links":
            links = list(value)
        else:
            metadata[name] = value

    LOGGER.debug(
        "Extracted %d links and %d tasks from %s",
        len(links),
        len(metadata["tasks"]),
        context.from_path,
    )
    return ParsedFile(ast=ast, metadata=metadata, links=links)
