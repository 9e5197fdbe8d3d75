"""Tag extraction from front matter and from ``#hashtags`` in the body."""

from __future__ import annotations

import re
from typing import Any, Iterable, Iterator, List

from markdown_it.tree import SyntaxTreeNode

HASHTAG_RE = re.compile(r"(?:^|(?<=\s))#([^\s#.,;:!?\"'`()\[\]{}<>]+)")

# Inline nodes whose content is never prose.
_OPAQUE_INLINE = frozenset({"code_inline", "html_inline", "image"})


def iter_text_runs(node: SyntaxTreeNode) -> Iterator[str]:
    """Yield contiguous runs of plain text found in inline content.

    Adjacent ``text`` nodes are joined so patterns spanning several tokens
    (``[[target]]`` for example) stay matchable; code spans break a run.
    """
    for current in node.walk():
        if current.type == "inline":
            yield from _runs_of(current)


def _runs_of(node: SyntaxTreeNode) -> Iterator[str]:
    run: List[str] = []
    for child in node.children:
        if child.type == "text":
            run.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            run.append("\n")
        else:
            if run:
                yield "".join(run)
                run = []
            if child.type not in _OPAQUE_INLINE:
                yield from _runs_of(child)
    if run:
        yield "".join(run)


def normalize_tags(value: Any) -> List[str]:
    """Front matter tags may be a list or a comma/space separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = re.split(r"[,\s]+", value)
    elif isinstance(value, (list, tuple, set)):
        items = value
    else:
        items = [value]
    tags = []
    for item in items:
        if item is None:
            continue
        tag = str(item).strip().lstrip("#")
        if tag:
            tags.append(tag)
    return tags


def extract_body_tags(ast: SyntaxTreeNode) -> List[str]:
    tags: List[str] = []
    for run in iter_text_runs(ast):
        for match in HASHTAG_RE.finditer(run):
            # "#123" is an issue reference, not a tag
            if not match.group(1).isdigit():
                tags.append(match.group(1))
    return tags


def merge_tags(*groups: Iterable[str]) -> List[str]:
    """Concatenate tag groups, dropping duplicates but keeping first-seen order."""
    seen: dict[str, None] = {}
    for group in groups:
        for tag in group:
            seen.setdefault(tag, None)
    return list(seen)
