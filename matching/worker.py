"""Background queue for alternative-video searches.

Intake enqueues a job and returns immediately; worker tasks run the finder
and log failures, so nothing here ever reaches the request that queued it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlternativeSearchJob:
    title: str
    channel: Optional[str]
    owner_id: int
    root_video_id: int


class FinderProtocol(Protocol):
    async def find_alternatives(self, title: str, channel: Optional[str],
                                owner_id: int, root_video_id: int) -> list[dict]: ...


class AlternativeSearchQueue:
    """Bounded asyncio.Queue drained by a fixed pool of worker tasks."""

    def __init__(self, finder: FinderProtocol, workers: int = 2, max_size: int = 100):
        self.finder = finder
        self.workers = max(1, workers)
        self._queue: asyncio.Queue[AlternativeSearchJob] = asyncio.Queue(maxsize=max_size)
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, job: AlternativeSearchJob) -> bool:
        """Queue a job without waiting. Returns False (and drops it) when full."""
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(f"Alternative search queue full, dropping video {job.root_video_id}")
            return False
        logger.debug(f"Queued alternative search for video {job.root_video_id}")
        return True

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"alt-search-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"Alternative search started with {self.workers} worker(s)")

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.finder.find_alternatives(
                    job.title, job.channel, job.owner_id, job.root_video_id,
                )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Alternative search crashed for video {job.root_video_id}")
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Alternative search stopped")
