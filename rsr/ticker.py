from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from threading import Event, Lock, Thread
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicJob:
    """A function run on a fixed interval that never overlaps itself."""

    def __init__(self, name: str, interval_s: float, fn: Callable[[], None], next_run: float = 0.0) -> None:
        self.name = name
        self.interval_s = max(0.01, float(interval_s))
        self.fn = fn
        self.next_run = next_run
        self.runs = 0
        self.skipped = 0
        self._running = Lock()

    @property
    def running(self) -> bool:
        return self._running.locked()

    def run_once(self) -> bool:
        """Run now unless a previous run is still going. Returns False when skipped."""
        if not self._running.acquire(blocking=False):
            self.skipped += 1
            return False
        try:
            self.fn()
            self.runs += 1
        except Exception:
            logger.exception("job %s failed", self.name)
        finally:
            self._running.release()
        return True


class Ticker:
    """Single timer thread driving every periodic job on a small worker pool.

    Jobs are fixed-rate: a tick that comes due while the previous run of the
    same job is still executing is skipped, not queued.
    """

    def __init__(self, max_workers: int = 4, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._max_workers = max(1, int(max_workers))
        self._lock = Lock()
        self._jobs: dict[str, PeriodicJob] = {}
        self._wake = Event()
        self._stop = False
        self._thr: Thread | None = None
        self._pool: ThreadPoolExecutor | None = None

    def every(self, name: str, interval_s: float, fn: Callable[[], None]) -> PeriodicJob:
        job = PeriodicJob(name, interval_s, fn)
        job.next_run = self._clock() + job.interval_s
        with self._lock:
            if name in self._jobs:
                raise ValueError(f"job '{name}' already scheduled")
            self._jobs[name] = job
        self._wake.set()
        return job

    def get(self, name: str) -> PeriodicJob | None:
        with self._lock:
            return self._jobs.get(name)

    def jobs(self) -> list[PeriodicJob]:
        with self._lock:
            return list(self._jobs.values())

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop = False
        self._pool = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="rsr-tick")
        self._thr = Thread(target=self._loop, name="rsr-ticker", daemon=True)
        self._thr.start()

    def stop(self, wait: bool = True) -> None:
        self._stop = True
        self._wake.set()
        if self._thr and wait:
            self._thr.join(timeout=5)
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            self._pool = None

    def due(self, now: float) -> list[PeriodicJob]:
        """Advance schedules and return the jobs that should start at `now`."""
        out: list[PeriodicJob] = []
        for job in self.jobs():
            if job.next_run > now:
                continue
            job.next_run += job.interval_s
            if job.next_run <= now:
                job.next_run = now + job.interval_s
            if job.running:
                job.skipped += 1
                continue
            out.append(job)
        return out

    def _loop(self) -> None:
        while not self._stop:
            now = self._clock()
            pool = self._pool
            for job in self.due(now):
                if pool is not None:
                    pool.submit(job.run_once)
            jobs = self.jobs()
            next_wake = min((j.next_run for j in jobs), default=now + 1.0)
            self._wake.wait(timeout=max(0.01, next_wake - now))
            self._wake.clear()
