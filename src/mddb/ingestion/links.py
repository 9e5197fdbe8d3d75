"""Link extraction: Markdown links, images, wikilinks and embeds."""

from __future__ import annotations

import posixpath
import re
from typing import List, Sequence
from urllib.parse import unquote

from markdown_it.tree import SyntaxTreeNode

from mddb.ingestion.tags import iter_text_runs
from mddb.models import Link

WIKILINK_RE = re.compile(r"(!?)\[\[([^\[\]|#]*)(#[^\[\]|]*)?(?:\|([^\[\]]*))?\]\]")
SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def is_external(href: str) -> bool:
    return bool(SCHEME_RE.match(href)) or href.startswith("//")


def _strip_suffixes(target: str) -> str:
    return target.split("#", 1)[0].split("?", 1)[0]


def resolve_relative(target: str, from_path: str) -> str:
    """Resolve a Markdown link target against the linking document's folder."""
    if target.startswith("/"):
        resolved = posixpath.normpath(target.lstrip("/"))
    else:
        resolved = posixpath.normpath(posixpath.join(posixpath.dirname(from_path), target))
    return "" if resolved == "." else resolved


def resolve_wikilink(target: str, permalinks: Sequence[str] | None) -> str:
    """Map a wikilink target to a known permalink; unresolved targets are returned as-is."""
    if not permalinks:
        return target
    wanted = target.lstrip("/")
    by_stem = []
    for permalink in permalinks:
        candidate = permalink.lstrip("/")
        stem = posixpath.splitext(candidate)[0]
        if wanted in (candidate, stem):
            return permalink
        if stem.endswith("/" + wanted) or posixpath.basename(candidate) == wanted:
            by_stem.append(permalink)
    return by_stem[0] if by_stem else target


def _link_text(node: SyntaxTreeNode) -> str:
    return "".join(
        child.content for child in node.walk() if child.type in ("text", "code_inline")
    )


def _markdown_link(href: str, text: str, from_path: str, *, embed: bool) -> Link | None:
    if not href or href.startswith("#"):
        return None
    if is_external(href):
        return Link(from_=from_path, to=href, to_raw=href, text=text, internal=False, embed=embed)
    raw = unquote(href)
    return Link(
        from_=from_path,
        to=resolve_relative(_strip_suffixes(raw), from_path),
        to_raw=raw,
        text=text,
        internal=True,
        embed=embed,
    )


def extract_links(
    ast: SyntaxTreeNode, from_path: str, permalinks: Sequence[str] | None = None
) -> List[Link]:
    """Collect Markdown links and images, then wikilinks, each in document order."""
    links: List[Link] = []
    for node in ast.walk():
        link: Link | None = None
        if node.type == "link":
            link = _markdown_link(node.attrs.get("href", ""), _link_text(node), from_path, embed=False)
        elif node.type == "image":
            link = _markdown_link(node.attrs.get("src", ""), node.content, from_path, embed=True)
        if link is not None:
            links.append(link)

    for run in iter_text_runs(ast):
        for match in WIKILINK_RE.finditer(run):
            embed, target, _heading, alias = match.groups()
            target = target.strip()
            if not target:
                continue
            links.append(
                Link(
                    from_=from_path,
                    to=resolve_wikilink(target, permalinks),
                    to_raw=target,
                    text=(alias or target).strip(),
                    internal=True,
                    embed=bool(embed),
                )
            )
    return links
