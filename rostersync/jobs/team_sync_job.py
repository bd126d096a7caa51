"""Sync PagerDuty team membership into a Slack user group."""
from __future__ import annotations

from rostersync.exceptions import GroupNotFoundError, SyncError, SyncJobError
from rostersync.jobs.base import JobOutcome, SyncJob
from rostersync.models.enums import JobType


class TeamSyncJob(SyncJob):
    job_type = JobType.TEAM_SYNC
    icon = ":threepeople:"

    @property
    def name(self) -> str:
        return (
            f"job: sync pagerduty team(s) '{','.join(self.pagerduty_ids)}' "
            f"to slack group: '{self.slack_handle}'"
        )

    def _execute(self, outcome: JobOutcome) -> None:
        roster, sources = self.resolver.resolve_team_members(self.pagerduty_ids)
        outcome.roster = roster
        outcome.sources = sources
        self._log_without_phone(roster)

        outcome.matched = self.matcher.match_to_chat(roster)

        try:
            if not outcome.matched and self.options.disable_slack_handle_temporary_if_none_on_shift:
                if self.dryrun:
                    self.reconciler.get_group(self.slack_handle)
                    return
                self.reconciler.disable(self.slack_handle, job_id=self.job_id)
                outcome.disabled = True
                return
            outcome.reconcile = self.reconciler.reconcile(
                self.slack_handle, outcome.matched, self.dryrun, job_id=self.job_id
            )
        except SyncError as e:
            raise SyncJobError(self.job_id, f"job: updating slack group '{self.slack_handle}' failed: {e}") from e

    def slack_info_message_body(self) -> str:
        try:
            count = self.reconciler.get_group(self.slack_handle).member_count
        except GroupNotFoundError:
            count = 0
        return f"*Member Count:*\n `{count}` are in this Slack group"


__all__ = ["TeamSyncJob"]
