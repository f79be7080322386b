from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path

from flipindex.core.models import ChunkRecord


class LiveManifest:
    """Append-only JSONL journal of chunk processing status.

    Provides atomic append operations for chunk records with proper file locking.
    """

    def __init__(self, path: Path) -> None:
        """Initialize manifest at the given path.

        Args:
            path: File path for the manifest JSONL file
        """
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        self._lock = asyncio.Lock()

    @classmethod
    def for_run(cls, manifests_dir: Path, network: str) -> LiveManifest:
        """One manifest file per run: run_<utc timestamp>_<network>.jsonl"""
        timestamp = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
        return cls(manifests_dir / f"run_{timestamp}_{network}.jsonl")

    async def append(self, rec: ChunkRecord) -> None:
        """Append a chunk record to the manifest atomically.

        Args:
            rec: ChunkRecord to write to the manifest
        """
        line = rec.to_json_line()
        async with self._lock:
            await asyncio.to_thread(self._write_line, self.path, line)

    @staticmethod
    def _write_line(path: Path, line: str) -> None:
        """Write a line to file with immediate flush and sync."""
        with open(path, "a", buffering=1) as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
