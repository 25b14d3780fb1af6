"""
Line-bounded text chunking.

Chunks are the unit of embedding and retrieval. Boundaries always fall on
line breaks; a single line longer than the bound is kept whole as its own
oversized chunk.
"""

from __future__ import annotations

from typing import Iterator, List

DEFAULT_CHUNK_SIZE = 500


def chunk_text(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[str]:
    """
    Yield consecutive chunks of ``text``, each at most ``max_chunk_size``
    characters unless a single line is longer than that.

    Joining the chunks with ``"\\n"`` reproduces ``text`` exactly. Empty
    lines never start a new chunk, so no chunk is ever empty and a
    trailing newline stays attached to the last chunk.
    """
    if isinstance(max_chunk_size, bool) or not isinstance(max_chunk_size, int) or max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be a positive integer, got {max_chunk_size!r}")
    if not text:
        return

    buffer: List[str] = []
    length = 0

    for line in text.split("\n"):
        added = len(line) + (1 if buffer else 0)
        if line and length > 0 and length + added > max_chunk_size:
            yield "\n".join(buffer)
            buffer = [line]
            length = len(line)
            continue
        buffer.append(line)
        length += added

    if length > 0:
        yield "\n".join(buffer)
