"""Line Chunker - Splits an ordered line sequence into fixed-size chunks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class Chunk:
    sequence_index: int  # 1-based, in production order within one round
    lines: Tuple[str, ...]
    offset: int = 0  # position of lines[0] in the caller's input


def chunk_lines(
    lines: Sequence[str],
    chunk_size: int,
    *,
    offset: int = 0,
    start_index: int = 1,
) -> List[Chunk]:
    """Split ``lines`` into contiguous chunks of ``chunk_size`` lines.

    Only the last chunk may be shorter. ``offset`` is the position of
    ``lines[0]`` in the original input and ``start_index`` the first
    sequence index to assign.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    chunks: List[Chunk] = []
    for start in range(0, len(lines), chunk_size):
        chunks.append(
            Chunk(
                sequence_index=start_index + len(chunks),
                lines=tuple(lines[start : start + chunk_size]),
                offset=offset + start,
            )
        )
    return chunks
