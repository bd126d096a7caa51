"""Sync the people on shift in PagerDuty schedules into a Slack user group."""
from __future__ import annotations

from rostersync.exceptions import SyncError, SyncJobError
from rostersync.jobs.base import JobOutcome, SyncJob
from rostersync.models.enums import JobType


class ScheduleSyncJob(SyncJob):
    job_type = JobType.SCHEDULE_SYNC
    icon = ":calendar:"

    @property
    def name(self) -> str:
        return (
            f"job: sync pagerduty schedule(s) '{','.join(self.pagerduty_ids)}' "
            f"to slack group: '{self.slack_handle}'"
        )

    def _execute(self, outcome: JobOutcome) -> None:
        opts = self.options
        forward = self._duration(opts.handover_time_frame_forward, "handoverTimeFrameForward", outcome)
        backward = self._duration(opts.handover_time_frame_backward, "handoverTimeFrameBackward", outcome)

        roster, sources = self.resolver.resolve_on_call(
            self.pagerduty_ids, since=backward, until=forward, style=opts.sync_style
        )
        outcome.roster = roster
        outcome.sources = sources
        if opts.inform_user_if_contact_phone_number_missing:
            self._log_without_phone(roster)

        outcome.matched = self.matcher.match_to_chat(roster)

        try:
            outcome.reconcile = self.reconciler.reconcile(
                self.slack_handle, outcome.matched, self.dryrun, job_id=self.job_id
            )
        except SyncError as e:
            raise SyncJobError(
                self.job_id, f"adding on-duty members to slack group '{self.slack_handle}' failed: {e}"
            ) from e

    def slack_info_message_body(self) -> str:
        people = [f"<{u.html_url}|{u.name}>" for u in self.outcome.roster]
        return "*Who is on shift:*\n - " + ",\n - ".join(people)


__all__ = ["ScheduleSyncJob"]
