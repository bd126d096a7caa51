"""
Sync jobs and the cron scheduler that fires them.
"""
from .base import JobOutcome, SyncJob
from .schedule_sync_job import ScheduleSyncJob
from .scheduler import CronScheduler
from .team_sync_job import TeamSyncJob

__all__ = ["JobOutcome", "SyncJob", "ScheduleSyncJob", "TeamSyncJob", "CronScheduler"]
