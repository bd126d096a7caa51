"""Cron scheduler for sync jobs and the directory refresh.

One daemon thread computes due entries with croniter and hands them to a
thread pool. Jobs run concurrently with each other but never with themselves:
a firing whose previous run is still in flight is skipped.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from croniter import croniter

from rostersync.config import SCHEDULER_SETTINGS
from rostersync.exceptions import ExternalServiceError, JobAlreadyRunningError, SyncError
from rostersync.jobs.base import SyncJob
from rostersync.services.status_message import StatusReporter
from rostersync.utils import get_logger, utc_now

logger = get_logger(__name__)


@dataclass(slots=True)
class ScheduledEntry:
    name: str
    cron: str
    action: Callable[[], Any]
    next_fire: datetime
    job: Optional[SyncJob] = None
    future: Optional[Future] = field(default=None, repr=False)

    @property
    def busy(self) -> bool:
        if self.job is not None and self.job.running:
            return True
        return self.future is not None and not self.future.done()


class CronScheduler:
    def __init__(
        self,
        *,
        reporter: Optional[StatusReporter] = None,
        max_workers: int = int(SCHEDULER_SETTINGS["max_workers"]),
        max_sleep_seconds: float = float(SCHEDULER_SETTINGS["max_sleep_seconds"]),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.reporter = reporter
        self.max_sleep_seconds = max_sleep_seconds
        self.clock = clock
        self.jobs: Dict[str, SyncJob] = {}
        self._entries: Dict[str, ScheduledEntry] = {}
        self._entries_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sync-job")
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    # ---------------------------- registration ---------------------------- #
    def add_job(self, job: SyncJob) -> ScheduledEntry:
        self.jobs[job.job_id] = job
        entry = ScheduledEntry(
            name=job.job_id,
            cron=job.config.crontab_expression,
            action=lambda: self.run_job(job),
            next_fire=job.next_run(self.clock()),
            job=job,
        )
        with self._entries_lock:
            self._entries[entry.name] = entry
        logger.info("Job scheduled", job_id=job.job_id, name=job.name, cron=entry.cron, next_run=entry.next_fire)
        return entry

    def add_task(self, name: str, cron: str, action: Callable[[], Any]) -> ScheduledEntry:
        entry = ScheduledEntry(
            name=name,
            cron=cron,
            action=action,
            next_fire=croniter(cron, self.clock()).get_next(datetime),
        )
        with self._entries_lock:
            self._entries[name] = entry
        logger.info("Task scheduled", task=name, cron=cron, next_run=entry.next_fire)
        return entry

    # ------------------------------ lifecycle ----------------------------- #
    def start(self) -> None:
        if self._thread and self._thread.is_alive():  # pragma: no cover
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="cron-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started", entries=len(self._entries))

    def stop(self, wait: bool = True) -> None:
        self._stop_event.set()
        if self._thread is not None and wait:
            self._thread.join(timeout=self.max_sleep_seconds + 1)
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.info("Scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_pending()
            except Exception as e:  # pragma: no cover
                logger.error("Scheduler loop error", error=str(e), exc_info=True)
            self._stop_event.wait(self._sleep_seconds())

    def _sleep_seconds(self) -> float:
        with self._entries_lock:
            upcoming = [e.next_fire for e in self._entries.values()]
        if not upcoming:
            return self.max_sleep_seconds
        delta = (min(upcoming) - self.clock()).total_seconds()
        return max(0.0, min(delta, self.max_sleep_seconds))

    # ------------------------------ dispatch ------------------------------ #
    def run_pending(self, now: Optional[datetime] = None) -> List[str]:
        """Dispatch every entry whose fire time has passed; returns dispatched names."""
        now = now or self.clock()
        dispatched: List[str] = []
        with self._entries_lock:
            due = [e for e in self._entries.values() if e.next_fire <= now]
            for entry in due:
                entry.next_fire = croniter(entry.cron, now).get_next(datetime)
                if entry.busy:
                    logger.warning("Previous run still in flight, skipping", entry=entry.name)
                    continue
                entry.future = self._executor.submit(entry.action)
                dispatched.append(entry.name)
        return dispatched

    def run_all_now(self) -> List[Future]:
        """Fire every sync job once, e.g. at service start."""
        return [self.trigger(job_id) for job_id in list(self.jobs)]

    def trigger(self, job_id: str) -> Future:
        """Run one job out of schedule. Raises JobAlreadyRunningError when it is busy."""
        with self._entries_lock:
            entry = self._entries[job_id]
            if entry.busy:
                raise JobAlreadyRunningError(job_id)
            entry.future = self._executor.submit(entry.action)
            return entry.future

    def run_job(self, job: SyncJob) -> None:
        """Run a job and post its status; failures are logged, never raised."""
        try:
            job.run()
        except JobAlreadyRunningError:
            logger.warning("Job already running, skipping", job_id=job.job_id)
            return
        except SyncError:
            pass  # recorded on the job and logged by it; still reported below
        except Exception as e:
            logger.error("Unexpected job failure", job_id=job.job_id, error=str(e), exc_info=True)

        if self.reporter is None:
            return
        try:
            self.reporter.post(job)
        except ExternalServiceError as e:
            logger.error("Posting status message failed", job_id=job.job_id, error=str(e))

    def snapshot(self) -> Dict[str, Any]:
        with self._entries_lock:
            entries = [
                {"name": e.name, "cron": e.cron, "next_run": e.next_fire.isoformat(), "busy": e.busy}
                for e in self._entries.values()
            ]
        return {"running": self.is_running, "entries": entries}


__all__ = ["CronScheduler", "ScheduledEntry"]
