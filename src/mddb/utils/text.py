"""Text helpers: draining Markdown input sources into one string."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Union

ENCODING = "utf-8"
READ_CHUNK_SIZE = 1 << 16

MarkdownInput = Union[str, bytes, bytearray, memoryview, Any]


def decode_bytes(data: bytes | bytearray | memoryview) -> str:
    """Decode UTF-8, replacing malformed sequences instead of failing."""
    return bytes(data).decode(ENCODING, errors="replace")


def _to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode(ENCODING)
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"Unsupported chunk type: {type(chunk).__name__}")


def iter_stream_chunks(stream: Any, *, chunk_size: int = READ_CHUNK_SIZE) -> Iterator[Any]:
    """Read a pull-style stream until EOF."""
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return
        yield chunk


def join_chunks(chunks: Iterable[Any]) -> str:
    """Collect every chunk, then decode once.

    Decoding only after the last chunk keeps multi-byte characters split
    across chunk boundaries intact.
    """
    buffer = bytearray()
    for chunk in chunks:
        buffer.extend(_to_bytes(chunk))
    return decode_bytes(buffer)


def read_markdown_input(source: MarkdownInput) -> str:
    """Normalise any supported input into a single decoded string.

    Accepts text, ``bytes``/``bytearray``/``memoryview`` buffers, pull-style
    streams (anything with ``read()``, binary or text) and push-style streams
    (any iterable of ``bytes`` or ``str`` chunks, such as a generator).
    """
    if isinstance(source, str):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return decode_bytes(source)
    if hasattr(source, "read"):
        return join_chunks(iter_stream_chunks(source))
    if isinstance(source, Iterable):
        return join_chunks(source)
    raise TypeError(f"Unsupported markdown input: {type(source).__name__}")
