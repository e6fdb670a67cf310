"""
Text Chunker

Splits long extracted text into overlapping fixed-size character windows so
each window fits comfortably inside a single synthesis call.
"""

from typing import List


def chunk_text(text: str, window_size: int, overlap: int) -> List[str]:
    """
    Split text into overlapping character windows.

    Each window covers ``[start, start + window_size)`` clamped to the text
    length; the next window starts ``overlap`` characters before the end of
    the previous one. Whitespace-only input yields no chunks.

    Args:
        text: Text to split
        window_size: Characters per window
        overlap: Characters shared by consecutive windows

    Returns:
        Ordered list of chunks
    """
    if window_size <= 0:
        raise ValueError("window_size must be positive")
    if overlap < 0 or overlap >= window_size:
        raise ValueError("overlap must be non-negative and smaller than window_size")

    if not text or not text.strip():
        return []

    chunks = []
    length = len(text)
    start = 0

    while True:
        end = min(start + window_size, length)
        chunks.append(text[start:end])
        if end >= length:
            break
        start = max(0, end - overlap)

    return chunks

