"""Split long transcripts into bounded, optionally overlapping chunks."""

from __future__ import annotations


def split_chunks(text: str, max_chunk_size: int, overlap: int = 200) -> list[str]:
    """
    Split *text* into slices of at most ``max_chunk_size`` characters.

    Consecutive chunks share ``overlap`` characters. The cursor always moves
    forward by at least one character, so an overlap that is not smaller
    than the chunk size degrades to a one-character step instead of looping.

    Args:
        text: Text to split
        max_chunk_size: Upper bound for each chunk length
        overlap: Characters repeated at the start of the next chunk

    Returns:
        Ordered list of chunks (empty for empty text)
    """
    if max_chunk_size < 1:
        raise ValueError("max_chunk_size must be positive")
    if overlap < 0:
        raise ValueError("overlap must not be negative")

    step = max(1, max_chunk_size - overlap)
    chunks: list[str] = []
    position = 0
    while position < len(text):
        chunks.append(text[position:position + max_chunk_size])
        if position + max_chunk_size >= len(text):
            break
        position += step
    return chunks
