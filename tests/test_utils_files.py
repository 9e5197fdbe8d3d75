"""Tests for file utilities."""

import hashlib
import re
from pathlib import Path

from mddb.utils.files import (
    compile_patterns,
    compute_file_id,
    is_ignored,
    iter_content_paths,
    relative_posix,
)


class TestCompilePatterns:
    """Test compile_patterns."""

    def test_strings_and_compiled(self):
        compiled = re.compile("b")
        patterns = compile_patterns(["a", compiled])

        assert patterns[0].pattern == "a"
        assert patterns[1] is compiled


class TestIsIgnored:
    """Test is_ignored."""

    def test_matches_anywhere_in_path(self):
        patterns = compile_patterns([r"\.obsidian"])

        assert is_ignored(Path("/vault/.obsidian/workspace.json"), patterns)
        assert not is_ignored(Path("/vault/notes/a.md"), patterns)

    def test_no_patterns(self):
        assert not is_ignored("/anything", [])


class TestIterContentPaths:
    """Test iter_content_paths."""

    def test_walks_recursively_in_sorted_order(self, tmp_path):
        (tmp_path / "b.md").write_text("b")
        (tmp_path / "a.md").write_text("a")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "c.md").write_text("c")

        paths = [p.relative_to(tmp_path).as_posix() for p in iter_content_paths(tmp_path)]

        assert paths == ["a.md", "b.md", "sub/c.md"]

    def test_prunes_ignored_directories(self, tmp_path):
        (tmp_path / "keep.md").write_text("x")
        (tmp_path / "Excalidraw").mkdir()
        (tmp_path / "Excalidraw" / "drawing.md").write_text("x")
        (tmp_path / ".DS_Store").write_text("x")

        paths = list(iter_content_paths(tmp_path, compile_patterns(["Excalidraw", "DS_Store"])))

        assert paths == [tmp_path / "keep.md"]


class TestRelativePosix:
    """Test relative_posix."""

    def test_relative_to_root(self, tmp_path):
        path = tmp_path / "notes" / "a.md"
        assert relative_posix(path, tmp_path) == "notes/a.md"

    def test_without_root(self):
        assert relative_posix(Path("notes/a.md"), None) == "notes/a.md"


class TestComputeFileId:
    """Test compute_file_id."""

    def test_sha1_of_source(self):
        assert compute_file_id("notes/a.md") == hashlib.sha1(b"notes/a.md").hexdigest()

    def test_stable_and_distinct(self):
        assert compute_file_id("a.md") == compute_file_id("a.md")
        assert compute_file_id("a.md") != compute_file_id("b.md")
