"""Sync job base class.

A job is one configured ``source objects -> Slack group`` binding. ``run()``
executes one sync and replaces the previous :class:`JobOutcome`; the reporting
accessors read from the latest outcome only.
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from croniter import croniter

from rostersync.exceptions import ConfigurationError, JobAlreadyRunningError, SyncError, SyncJobError
from rostersync.models.enums import JobType
from rostersync.models.schemas.chat import ChatIdentity
from rostersync.models.schemas.config import SyncJobConfig, SyncOptions
from rostersync.models.schemas.jobs import JobStatus
from rostersync.models.schemas.roster import RosterEntry, SourceObject
from rostersync.services.group_reconciler import GroupReconciler, ReconcileResult
from rostersync.services.identity_matcher import IdentityMatcher
from rostersync.services.roster_resolver import RosterResolver, without_phone
from rostersync.utils import format_elapsed, get_logger, log_performance, parse_duration, utc_now

logger = get_logger(__name__)


@dataclass(slots=True)
class JobOutcome:
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    roster: List[RosterEntry] = field(default_factory=list)
    sources: List[SourceObject] = field(default_factory=list)
    matched: List[ChatIdentity] = field(default_factory=list)
    reconcile: Optional[ReconcileResult] = None
    disabled: bool = False
    # Every error recorded during the run, non-fatal ones included; the last one is reported.
    errors: List[SyncError] = field(default_factory=list)

    @property
    def error(self) -> Optional[SyncError]:
        return self.errors[-1] if self.errors else None

    @property
    def no_change(self) -> Optional[bool]:
        return None if self.reconcile is None else self.reconcile.no_change


class SyncJob(ABC):
    job_type: JobType
    icon: str

    def __init__(
        self,
        job_id: str,
        config: SyncJobConfig,
        *,
        resolver: RosterResolver,
        matcher: IdentityMatcher,
        reconciler: GroupReconciler,
        dryrun: bool,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.job_id = job_id
        self.config = config
        self.resolver = resolver
        self.matcher = matcher
        self.reconciler = reconciler
        self._dryrun = dryrun
        self.clock = clock
        self._lock = threading.Lock()
        self._outcome = JobOutcome()

    # ------------------------- reporting view ------------------------- #
    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    def options(self) -> SyncOptions:
        return self.config.sync_options

    @property
    def slack_handle(self) -> str:
        return self.config.sync_objects.slack_group_handle

    @property
    def pagerduty_ids(self) -> List[str]:
        return list(self.config.sync_objects.pagerduty_object_ids)

    @property
    def pagerduty_objects(self) -> List[SourceObject]:
        return list(self._outcome.sources)

    @property
    def dryrun(self) -> bool:
        return self._dryrun

    @property
    def error(self) -> Optional[SyncError]:
        return self._outcome.error

    @property
    def outcome(self) -> JobOutcome:
        return self._outcome

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def next_run(self, after: Optional[datetime] = None) -> datetime:
        return croniter(self.config.crontab_expression, after or self.clock()).get_next(datetime)

    @abstractmethod
    def slack_info_message_body(self) -> str:
        """Job specific markdown for the status message."""

    def status(self) -> JobStatus:
        outcome = self._outcome
        return JobStatus(
            job_id=self.job_id,
            name=self.name,
            job_type=self.job_type,
            slack_handle=self.slack_handle,
            dryrun=self.dryrun,
            running=self.running,
            next_run=self.next_run(),
            last_started_at=outcome.started_at,
            last_finished_at=outcome.finished_at,
            no_change=outcome.no_change,
            error=str(outcome.error) if outcome.error else None,
            sources=outcome.sources,
            roster=outcome.roster,
            matched=outcome.matched,
        )

    # ------------------------------ run ------------------------------ #
    def run(self) -> JobOutcome:
        """Execute one sync. Raises the aborting error after recording it."""
        if not self._lock.acquire(blocking=False):
            raise JobAlreadyRunningError(self.job_id)
        outcome = JobOutcome(started_at=self.clock())
        self._outcome = outcome
        started = time.perf_counter()
        logger.info(self.name, job_id=self.job_id, dryrun=self.dryrun)
        try:
            self._execute(outcome)
        except SyncError as e:
            if outcome.error is not e:
                outcome.errors.append(e)
            logger.error("Sync job failed", job_id=self.job_id, handle=self.slack_handle, error=str(e))
            raise
        except Exception as e:
            err = SyncJobError(self.job_id, f"job: '{self.slack_handle}' failed unexpectedly: {type(e).__name__}: {e}")
            outcome.errors.append(err)
            logger.error("Sync job crashed", job_id=self.job_id, handle=self.slack_handle, error=str(e),
                         exc_info=True)
            raise err from e
        finally:
            outcome.finished_at = self.clock()
            log_performance(
                "sync_job_run",
                round((time.perf_counter() - started) * 1000, 2),
                {"job_id": self.job_id, "failed": outcome.error is not None},
            )
            self._lock.release()
        logger.info(
            "Sync job finished",
            job_id=self.job_id,
            handle=self.slack_handle,
            no_change=outcome.no_change,
            disabled=outcome.disabled or None,
            elapsed=format_elapsed(outcome.started_at, outcome.finished_at),
        )
        return outcome

    @abstractmethod
    def _execute(self, outcome: JobOutcome) -> None:
        ...

    # ---------------------------- helpers ---------------------------- #
    def _duration(self, value: str, option: str, outcome: JobOutcome) -> timedelta:
        try:
            return parse_duration(value)
        except ValueError:
            err = ConfigurationError(
                f"job: invalid duration '{value}' for {option} of '{self.slack_handle}'; using 0"
            )
            outcome.errors.append(err)
            logger.warning(str(err), job_id=self.job_id)
            return timedelta(0)

    def _log_without_phone(self, entries: List[RosterEntry]) -> None:
        for entry in without_phone(entries):
            logger.warning("User without phone contact method", job_id=self.job_id, user=entry.name,
                           url=entry.html_url)


__all__ = ["SyncJob", "JobOutcome"]
