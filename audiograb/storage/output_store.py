"""Encoded output files on local disk with age-based cleanup."""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class OutputStore:
    """Manages the downloads directory.

    Files live independently of job records: the encoder writes them, the
    static route reads them and ``cleanup_expired`` removes them once their
    last-modified time is older than the TTL.
    """

    def __init__(self, base_dir: str, ttl_seconds: float = 3600):
        self._base_dir = Path(base_dir).resolve()
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._ttl_seconds = ttl_seconds

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def output_path(self, filename: str) -> Path:
        """Full path for an output file name."""
        return self._base_dir / filename

    def resolve(self, filename: str) -> Optional[Path]:
        """Path of an existing output file, None if absent or outside the store."""
        path = (self._base_dir / filename).resolve()
        if path.parent != self._base_dir or not path.is_file():
            return None
        return path

    async def stat_size(self, path: Path) -> int:
        """Size in bytes. Raises OSError if the file cannot be stat'ed."""
        stats = await asyncio.to_thread(os.stat, path)
        return stats.st_size

    async def remove_quietly(self, path: Path) -> bool:
        """Best-effort delete. Never raises; returns whether a file was removed."""
        try:
            await asyncio.to_thread(os.unlink, path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Could not clean up partial file %s: %s", path, exc)
            return False
        logger.info("Removed partial file %s", path.name)
        return True

    def cleanup_expired(self, now: Optional[float] = None) -> int:
        """Remove files whose mtime is older than the TTL. Returns count removed."""
        now = time.time() if now is None else now
        removed = 0
        try:
            entries = list(os.scandir(self._base_dir))
        except OSError as exc:
            logger.error("Error reading downloads directory %s: %s", self._base_dir, exc)
            return 0
        for entry in entries:
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                if now - entry.stat(follow_symlinks=False).st_mtime > self._ttl_seconds:
                    os.unlink(entry.path)
                    removed += 1
                    logger.info("Cleaned up old file: %s", entry.name)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error("Error cleaning up file %s: %s", entry.name, exc)
        return removed
