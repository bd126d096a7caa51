"""Service wiring.

Builds clients, the directory cache, the sync services and the jobs from a
validated :class:`SyncConfig`. Nothing here is a module global; the FastAPI
lifespan keeps the resulting :class:`SyncRuntime` on ``app.state``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from rostersync.config import SCHEDULER_SETTINGS
from rostersync.integrations.base import ChatDirectoryAPI, IncidentRosterAPI
from rostersync.integrations.pagerduty import PagerDutyClient
from rostersync.integrations.slack import SlackClient
from rostersync.jobs.base import SyncJob
from rostersync.jobs.schedule_sync_job import ScheduleSyncJob
from rostersync.jobs.scheduler import CronScheduler
from rostersync.jobs.team_sync_job import TeamSyncJob
from rostersync.models.schemas.config import SyncConfig
from rostersync.services.directory import DirectoryCache
from rostersync.services.group_reconciler import GroupReconciler
from rostersync.services.identity_matcher import IdentityMatcher
from rostersync.services.roster_resolver import RosterResolver
from rostersync.services.status_message import StatusReporter
from rostersync.utils import get_logger

logger = get_logger(__name__)

DIRECTORY_REFRESH_TASK = "directory-refresh"


@dataclass(slots=True)
class SyncRuntime:
    config: SyncConfig
    roster_api: IncidentRosterAPI
    chat_api: ChatDirectoryAPI
    directory: DirectoryCache
    resolver: RosterResolver
    matcher: IdentityMatcher
    reconciler: GroupReconciler
    reporter: Optional[StatusReporter]
    scheduler: CronScheduler
    jobs: List[SyncJob] = field(default_factory=list)

    def get_job(self, job_id: str) -> Optional[SyncJob]:
        return self.scheduler.jobs.get(job_id)


def build_jobs(
    cfg: SyncConfig,
    *,
    resolver: RosterResolver,
    matcher: IdentityMatcher,
    reconciler: GroupReconciler,
) -> List[SyncJob]:
    dryrun = not cfg.global_.write
    services = {"resolver": resolver, "matcher": matcher, "reconciler": reconciler, "dryrun": dryrun}
    jobs: List[SyncJob] = []
    for i, job_cfg in enumerate(cfg.jobs.schedule_sync):
        jobs.append(ScheduleSyncJob(f"schedule-{i}", job_cfg, **services))
    for i, job_cfg in enumerate(cfg.jobs.team_sync):
        jobs.append(TeamSyncJob(f"team-{i}", job_cfg, **services))
    return jobs


def build_runtime(
    cfg: SyncConfig,
    *,
    roster_api: Optional[IncidentRosterAPI] = None,
    chat_api: Optional[ChatDirectoryAPI] = None,
) -> SyncRuntime:
    """Assemble the runtime. API clients may be injected (tests)."""
    if roster_api is None:
        roster_api = PagerDutyClient(cfg.pagerduty.auth_token, api_user=cfg.pagerduty.api_user)
    if chat_api is None:
        chat_api = SlackClient(cfg.slack.bot_security_token, cfg.slack.user_security_token)

    directory = DirectoryCache(chat_api)
    resolver = RosterResolver(roster_api)
    matcher = IdentityMatcher(directory)
    reconciler = GroupReconciler(chat_api, directory)
    reporter = StatusReporter(chat_api, cfg.slack.info_channel) if cfg.slack.info_channel else None
    scheduler = CronScheduler(reporter=reporter)

    jobs = build_jobs(cfg, resolver=resolver, matcher=matcher, reconciler=reconciler)
    for job in jobs:
        scheduler.add_job(job)
    scheduler.add_task(DIRECTORY_REFRESH_TASK, SCHEDULER_SETTINGS["directory_refresh_cron"], directory.refresh)

    return SyncRuntime(
        config=cfg,
        roster_api=roster_api,
        chat_api=chat_api,
        directory=directory,
        resolver=resolver,
        matcher=matcher,
        reconciler=reconciler,
        reporter=reporter,
        scheduler=scheduler,
        jobs=jobs,
    )


def start_runtime(
    runtime: SyncRuntime,
    *,
    start_scheduler: bool = True,
    run_at_start: Optional[bool] = None,
) -> None:
    """Initial directory load and channel check (both fatal), then start firing jobs."""
    runtime.directory.refresh()
    if runtime.reporter is not None:
        runtime.reporter.validate_channel()
    else:
        logger.warning("No slack info channel configured; status messages disabled")

    if start_scheduler:
        runtime.scheduler.start()
    if run_at_start is None:
        run_at_start = runtime.config.global_.run_at_start
    if run_at_start:
        logger.info("Running all jobs at start", jobs=len(runtime.jobs))
        runtime.scheduler.run_all_now()
    logger.info(
        "Sync runtime started",
        jobs=len(runtime.jobs),
        dryrun=not runtime.config.global_.write,
    )


def stop_runtime(runtime: SyncRuntime) -> None:
    runtime.scheduler.stop()
    for client in (runtime.roster_api, runtime.chat_api):
        close = getattr(client, "close", None)
        if close is not None:
            close()


__all__ = ["SyncRuntime", "build_jobs", "build_runtime", "start_runtime", "stop_runtime", "DIRECTORY_REFRESH_TASK"]
