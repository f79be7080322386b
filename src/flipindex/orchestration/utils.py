"""Block-range utilities for chunked indexing.

All intervals are inclusive on both ends: [start, end].
"""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass


def iter_chunks(a: int, b: int, step: int) -> Generator[tuple[int, int], None, None]:
    """Yield inclusive [start, end] block ranges of size at most `step`."""
    if step <= 0:
        raise ValueError("step must be > 0")
    x = a
    while x <= b:
        y = min(b, x + step - 1)
        yield (x, y)
        x = y + 1


@dataclass(frozen=True)
class WorkSeed:
    """Inclusive block interval to process."""

    start: int
    end: int

    @property
    def single_block(self) -> bool:
        return self.start == self.end

    def split(self) -> tuple[WorkSeed, WorkSeed]:
        mid = (self.start + self.end) // 2
        return (
            WorkSeed(self.start, mid),
            WorkSeed(mid + 1, self.end),
        )


def build_work_seeds(start: int, end: int, step: int) -> list[WorkSeed]:
    """Chunk [start, end] into ordered seeds of at most `step` blocks."""
    return [WorkSeed(a, b) for a, b in iter_chunks(start, end, step)]
