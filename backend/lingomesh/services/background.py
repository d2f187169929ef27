"""
Fire-and-forget background writer.

Cache write-through and hit-count updates are queued here so the response
never waits on persistence.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from lingomesh.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _Job:
    name: str
    factory: Callable[[], Awaitable[object]]


class BackgroundWriter:
    """
    Bounded queue drained by a fixed pool of worker tasks.

    ``submit`` never blocks: when the queue is full the job is dropped and a
    warning is logged. Job failures are logged and never reach the submitter.
    """

    def __init__(self, max_queue_size: int = 1000, workers: int = 4):
        self.max_queue_size = max_queue_size
        self.worker_count = workers
        self._queue: asyncio.Queue[_Job] | None = None
        self._workers: list[asyncio.Task] = []
        self.dropped = 0
        self.failed = 0

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        """Start the worker tasks on the running loop."""
        if self._workers:
            return
        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"background-writer-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"Background writer started with {self.worker_count} workers")

    def submit(self, name: str, factory: Callable[[], Awaitable[object]]) -> bool:
        """
        Queue ``factory()`` to run in the background.

        Returns:
            bool: False if the job was dropped
        """
        if self._queue is None:
            raise RuntimeError("BackgroundWriter.submit called before start()")
        try:
            self._queue.put_nowait(_Job(name=name, factory=factory))
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Background queue full, dropping job {name}")
            return False
        return True

    async def drain(self) -> None:
        """Wait until every queued job has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain: bool = True) -> None:
        """Stop the workers, optionally finishing queued jobs first."""
        if not self._workers:
            return
        if drain:
            await self.drain()
        for task in self._workers:
            task.cancel()
        for task in self._workers:
            try:
                await task
            except asyncio.CancelledError:
                logger.debug(f"Worker {task.get_name()} cancelled")
        self._workers = []
        logger.info("Background writer stopped")

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            try:
                await job.factory()
            except Exception as e:
                self.failed += 1
                logger.error(f"Background job {job.name} failed: {e}", exc_info=True)
            finally:
                self._queue.task_done()
