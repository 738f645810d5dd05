"""
Bounded in-process queue for follow-up work.

Webhook handlers hand work here (e.g. the acknowledgment reply) after the
check-in is persisted, so carrier latency never delays the webhook response.
Jobs run on a fixed number of workers; a failing job is logged and never
affects other jobs or the caller. A full queue drops new jobs.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[None]]


@dataclass
class _Job:
    name: str
    factory: JobFactory


class BackgroundTaskQueue:
    """
    Fixed-size worker pool over an asyncio.Queue.
    """

    def __init__(self, max_size: int = 500, workers: int = 2):
        """
        Initialize BackgroundTaskQueue.

        Args:
            max_size: Jobs that may wait before new ones are dropped
            workers: Number of concurrent worker tasks
        """
        self._max_size = max(1, max_size)
        self._worker_count = max(1, workers)
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self.processed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def start(self) -> None:
        """Start workers on the running event loop."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._max_size)
        self._workers = [
            asyncio.ensure_future(self._worker(index)) for index in range(self._worker_count)
        ]
        logger.info(
            f"Follow-up queue started ({self._worker_count} workers, capacity {self._max_size})"
        )

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """
        Let queued jobs finish (bounded by drain_timeout), then stop workers.
        """
        if not self.running:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Follow-up queue stopped with {self._queue.qsize()} job(s) still pending"
            )

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(
            f"Follow-up queue stopped (processed={self.processed}, failed={self.failed}, "
            f"dropped={self.dropped})"
        )

    def submit(self, name: str, factory: JobFactory) -> bool:
        """
        Enqueue a job without waiting.

        Args:
            name: Label used in logs
            factory: Zero-argument callable returning the coroutine to run

        Returns:
            False when the queue is not running or is full
        """
        if not self.running:
            logger.warning(f"Follow-up queue not running; dropped job {name}")
            self.dropped += 1
            return False

        try:
            self._queue.put_nowait(_Job(name=name, factory=factory))
        except asyncio.QueueFull:
            logger.warning(f"Follow-up queue full ({self._max_size}); dropped job {name}")
            self.dropped += 1
            return False

        return True

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await job.factory()
                self.processed += 1
            except Exception as e:
                self.failed += 1
                logger.error(f"Follow-up job {job.name} failed on worker {index}: {e}")
            finally:
                self._queue.task_done()
