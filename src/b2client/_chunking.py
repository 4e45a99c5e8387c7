from __future__ import annotations

import io
from typing import IO

from .types import FilePart

UNKNOWN_LENGTH = -1


def should_chunk(size: int, cutoff: int) -> bool:
    return size >= cutoff


def effective_part_size(configured: int, recommended: int, absolute_minimum: int) -> int:
    """Pick the part size to use for a transfer.

    A configured size of 0 defers to the server recommendation; anything below
    the server's absolute minimum is raised to that minimum.
    """
    if configured == 0:
        return recommended
    if configured < absolute_minimum:
        return absolute_minimum
    return configured


def plan_parts(total_length: int, part_size: int) -> list[FilePart]:
    """Partition ``[0, total_length)`` into consecutive, 1-numbered parts.

    Returns an empty list when the content fits in a single part or its
    length is unknown.
    """
    if part_size <= 0:
        raise ValueError(f"part_size must be positive, got {part_size}")
    if total_length == UNKNOWN_LENGTH or total_length <= part_size:
        return []

    count = -(-total_length // part_size)
    parts: list[FilePart] = []
    for index in range(count):
        position = index * part_size
        length = min(part_size, total_length - position)
        parts.append(FilePart(part_number=index + 1, position=position, length=length))
    return parts


def stream_length(stream: IO[bytes]) -> int:
    """Bytes remaining from the current position, or -1 if not seekable."""
    try:
        if not stream.seekable():
            return UNKNOWN_LENGTH
        current = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(current, io.SEEK_SET)
    except (AttributeError, OSError):
        return UNKNOWN_LENGTH
    return end - current


__all__ = [
    "UNKNOWN_LENGTH",
    "effective_part_size",
    "plan_parts",
    "should_chunk",
    "stream_length",
]
