"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import os
import re
from pathlib import Path
from typing import Iterable, Iterator, Pattern, Sequence


def compile_patterns(patterns: Iterable[str | Pattern[str]]) -> list[Pattern[str]]:
    return [p if isinstance(p, re.Pattern) else re.compile(p) for p in patterns]


def is_ignored(path: Path | str, patterns: Sequence[Pattern[str]]) -> bool:
    """Return True when any pattern matches anywhere in the full path."""
    text = str(path)
    return any(pattern.search(text) for pattern in patterns)


def iter_content_paths(root: Path, patterns: Sequence[Pattern[str]] = ()) -> Iterator[Path]:
    """Yield every file below ``root`` that no ignore pattern matches."""
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if not is_ignored(current / d, patterns))
        for name in sorted(filenames):
            path = current / name
            if not is_ignored(path, patterns):
                yield path


def relative_posix(path: Path | str, root: Path | str | None) -> str:
    """Path relative to ``root`` in POSIX form, so ids match across platforms."""
    if root is None:
        return Path(path).as_posix()
    return Path(os.path.relpath(path, root)).as_posix()


def compute_file_id(id_source: str) -> str:
    """Compute the SHA1 identifier for a relative path (or in-memory source)."""
    return hashlib.sha1(id_source.encode("utf-8")).hexdigest()
