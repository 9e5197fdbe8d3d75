"""Shared fixtures."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from mddb.db import MarkdownDB


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
    return path


INDEX_MDX = """
---
title: Homepage
tags:
  - tag1
  - tag2
---

# Welcome

Read the first [link](blog0.mdx) post.

- [ ] uncompleted task 2
- [x] completed task 1
"""

BLOG0_MDX = """
---
type: blog
title: First post
tags: [news]
---

Hello #announcement world. See [[index]] and ![[image.png]].
"""

TODO_MD = """
---
tags: work
---

- [ ] buy milk
- [x] file taxes [due:: 2024-04-15] [priority:: high]
- [ ] book flights \U0001F4C5 2024-06-01 ⏳ 2024-05-20
- plain item

Back to [home](../index.mdx) or visit [site](https://example.com).
"""


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    """A small content folder: two MDX pages, a nested note and an image."""
    root = tmp_path / "content"
    write(root / "index.mdx", INDEX_MDX)
    write(root / "blog0.mdx", BLOG0_MDX)
    write(root / "notes" / "todo.md", TODO_MD)
    (root / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    return root.resolve()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "markdown.db"


@pytest.fixture
def mddb(db_path: Path):
    with MarkdownDB(db_path) as instance:
        yield instance
