"""Checklist task extraction.

Recognises ``- [ ]`` / ``- [x]`` list items. Scheduling attributes come
from inline fields (``[due:: 2024-05-01]``) or the Tasks plugin emoji
shorthand (``📅 2024-05-01``); any other inline field is kept in the
task's ``metadata``.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

from markdown_it.tree import SyntaxTreeNode

from mddb.models import TASK_DATE_FIELDS, Task

TASK_RE = re.compile(r"^\[(?P<mark>[ xX])\]\s+(?P<body>.*)$")
INLINE_FIELD_RE = re.compile(r"[\[(](?P<key>[\w-]+)::\s*(?P<value>[^\])]*?)\s*[\])]")
EMOJI_FIELDS = {
    "➕": "created",  # heavy plus sign
    "\U0001F4C5": "due",  # calendar
    "\U0001F4C6": "due",  # tear-off calendar
    "\U0001F5D3": "due",  # spiral calendar
    "✅": "completion",  # check mark button
    "\U0001F6EB": "start",  # airplane departure
    "⏳": "scheduled",  # hourglass with flowing sand
    "⌛": "scheduled",  # hourglass
}
EMOJI_DATE_RE = re.compile(
    "(?P<emoji>[" + "".join(EMOJI_FIELDS) + "])\uFE0F?\\s*(?P<date>\\d{4}-\\d{2}-\\d{2})"
)

TASK_ATTRIBUTES = frozenset(TASK_DATE_FIELDS) | {"list"}


def _clean_description(body: str) -> str:
    body = INLINE_FIELD_RE.sub(" ", body)
    body = EMOJI_DATE_RE.sub(" ", body)
    return " ".join(body.split())


def parse_task_line(line: str, text: str | None = None) -> Task | None:
    """Parse one checklist line.

    ``line`` is the raw Markdown source and feeds the attributes. ``text``,
    when given, is the same line with inline markup removed and becomes the
    description.
    """
    match = TASK_RE.match(line.strip())
    if match is None:
        return None

    body = match.group("body")
    task = Task(description="", checked=match.group("mark") in "xX")
    extra: Dict[str, Any] = {}

    for field_match in INLINE_FIELD_RE.finditer(body):
        key = field_match.group("key")
        value = field_match.group("value")
        if key in TASK_ATTRIBUTES:
            setattr(task, key, value or None)
        else:
            extra[key] = value

    for emoji_match in EMOJI_DATE_RE.finditer(INLINE_FIELD_RE.sub(" ", body)):
        setattr(task, EMOJI_FIELDS[emoji_match.group("emoji")], emoji_match.group("date"))

    plain = TASK_RE.match(text.strip()) if text is not None else None
    task.description = _clean_description(plain.group("body") if plain else body)
    task.metadata = extra
    return task


def _plain_first_line(node: SyntaxTreeNode) -> str:
    """Text of an inline node up to its first line break, without markup."""
    parts: List[str] = []

    def collect(current: SyntaxTreeNode) -> bool:
        for child in current.children:
            if child.type in ("softbreak", "hardbreak"):
                return False
            if child.type in ("text", "code_inline"):
                parts.append(child.content)
            elif child.type not in ("image", "html_inline"):
                if not collect(child):
                    return False
        return True

    collect(node)
    return "".join(parts)


def extract_tasks(ast: SyntaxTreeNode) -> List[Task]:
    tasks: List[Task] = []
    for node in ast.walk():
        if node.type != "list_item" or not node.children:
            continue
        paragraph = node.children[0]
        if paragraph.type != "paragraph" or not paragraph.children:
            continue
        inline = paragraph.children[0]
        first_line = inline.content.split("\n", 1)[0]
        task = parse_task_line(first_line, _plain_first_line(inline))
        if task is not None:
            tasks.append(task)
    return tasks
