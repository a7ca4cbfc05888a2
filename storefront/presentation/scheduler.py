import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

from storefront.infrastructure.clock import Clock

logger = logging.getLogger(__name__)


class Job:
    """A named callable fired every `interval` seconds."""

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Awaitable[Any]],
    ):
        self.name = name
        self.interval = interval
        self.next_run: float | None = None
        self._func = func
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self) -> bool:
        """Run once. A run that overlaps the previous one is skipped."""
        if self._lock.locked():
            logger.warning(f"Job {self.name} is still running, skipping this tick")
            return False

        async with self._lock:
            try:
                await self._func()
            except Exception as e:
                logger.error(f"Job {self.name} failed: {e}", exc_info=True)
        return True


class Scheduler:
    def __init__(
        self,
        clock: Clock,
        jobs: Iterable[Job] = (),
        tick: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._clock = clock
        self._jobs: dict[str, Job] = {}
        self._tick = tick
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()
        for job in jobs:
            self.add_job(job)

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def add_job(self, job: Job) -> None:
        if job.name in self._jobs:
            raise ValueError(f"Job {job.name} is already scheduled")
        job.next_run = self._clock.monotonic() + job.interval
        self._jobs[job.name] = job

    def get_job(self, name: str) -> Job:
        return self._jobs[name]

    def run_pending(self) -> list[asyncio.Task]:
        """Start every job that is due. Jobs run concurrently with each other."""
        now = self._clock.monotonic()
        started = []
        for job in self._jobs.values():
            if job.next_run is None or job.next_run > now:
                continue

            job.next_run = now + job.interval
            task = asyncio.create_task(job.run(), name=f"job:{job.name}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            started.append(task)

        return started

    async def run(self) -> None:
        logger.info(
            "Scheduler started: "
            + ", ".join(f"{job.name} every {job.interval}s" for job in self.jobs)
        )
        try:
            while True:
                self.run_pending()
                await self._sleep(self._tick)
        finally:
            tasks = list(self._tasks)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
