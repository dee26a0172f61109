"""
Age-based cleanup of the upload and output directories.

Best effort: the sweep does not coordinate with jobs in flight.
"""
import asyncio
import shutil
import time
from pathlib import Path
from typing import Iterable, List, Optional

import structlog

logger = structlog.get_logger()


class RetentionSweeper:
    """Deletes entries older than ``max_age`` seconds from a set of directories."""

    def __init__(self, directories: Iterable[Path], max_age: float, interval: float):
        self.directories = [Path(d) for d in directories]
        self.max_age = max_age
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def sweep_once(self, now: Optional[float] = None) -> List[Path]:
        """Run one sweep and return the removed paths."""
        now = time.time() if now is None else now
        removed: List[Path] = []
        for directory in self.directories:
            removed.extend(self._sweep_directory(directory, now))
        return removed

    def _sweep_directory(self, directory: Path, now: float) -> List[Path]:
        removed: List[Path] = []
        if not directory.exists():
            return removed
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            logger.error("Error cleaning up directory", directory=str(directory), error=str(e))
            return removed

        for path in entries:
            try:
                if now - path.stat().st_mtime <= self.max_age:
                    continue
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink()
                removed.append(path)
                logger.info("Cleaned up old file", path=str(path))
            except FileNotFoundError:
                # Removed by its job in the meantime
                continue
            except OSError as e:
                logger.error("Failed to clean up file", path=str(path), error=str(e))
        return removed

    async def run_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await asyncio.to_thread(self.sweep_once)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="retention-sweeper")
            logger.info(
                "Retention sweeper started",
                directories=[str(d) for d in self.directories],
                max_age=self.max_age,
                interval=self.interval,
            )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
