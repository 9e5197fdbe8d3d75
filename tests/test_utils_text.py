"""Tests for text input helpers."""

import io

import pytest

from mddb.utils.text import decode_bytes, iter_stream_chunks, join_chunks, read_markdown_input


class TestReadMarkdownInput:
    """Every supported input kind decodes to the same text."""

    TEXT = "# Héllo\n\nwörld\n"

    def test_str(self):
        assert read_markdown_input(self.TEXT) == self.TEXT

    def test_bytes(self):
        assert read_markdown_input(self.TEXT.encode("utf-8")) == self.TEXT

    def test_bytearray(self):
        assert read_markdown_input(bytearray(self.TEXT.encode("utf-8"))) == self.TEXT

    def test_memoryview(self):
        assert read_markdown_input(memoryview(self.TEXT.encode("utf-8"))) == self.TEXT

    def test_binary_stream(self):
        assert read_markdown_input(io.BytesIO(self.TEXT.encode("utf-8"))) == self.TEXT

    def test_text_stream(self):
        assert read_markdown_input(io.StringIO(self.TEXT)) == self.TEXT

    def test_generator_of_chunks(self):
        def chunks():
            yield b"# H"
            yield "éllo\n\n"
            yield b"w\xc3\xb6rld\n"

        assert read_markdown_input(chunks()) == self.TEXT

    def test_multibyte_character_split_across_chunks(self):
        encoded = "é".encode("utf-8")
        assert read_markdown_input(iter([encoded[:1], encoded[1:]])) == "é"

    def test_invalid_utf8_is_replaced(self):
        assert read_markdown_input(b"ok\xff") == "ok�"

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            read_markdown_input(42)


class TestHelpers:
    """Test the lower level helpers."""

    def test_iter_stream_chunks_small_reads(self):
        chunks = list(iter_stream_chunks(io.BytesIO(b"abcdef"), chunk_size=4))
        assert chunks == [b"abcd", b"ef"]

    def test_join_chunks_rejects_unknown_chunk(self):
        with pytest.raises(TypeError):
            join_chunks([b"a", 1])

    def test_decode_bytes(self):
        assert decode_bytes(b"abc") == "abc"
