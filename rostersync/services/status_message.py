"""Slack status post for a finished sync job run.

Layout (Block Kit):
  header   ``<icon> <job type> > Slack Handle: `<handle>` [- !!! DRY RUN ...]``
  error    ``:stop-sign: *Error:* <text>`` (only when the run recorded one)
  fields   PD sources | job specific body | next run
  divider
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from rostersync.exceptions import ConfigurationError, ExternalServiceError
from rostersync.integrations.base import ChatDirectoryAPI
from rostersync.models.schemas.chat import ChatChannel
from rostersync.utils import format_rfc822, get_logger

if TYPE_CHECKING:
    from rostersync.jobs.base import SyncJob

logger = get_logger(__name__)

DRY_RUN_MARKER = " - !!! DRY RUN !!! No update done !!!"


def _mrkdwn(text: str) -> Dict[str, Any]:
    return {"type": "mrkdwn", "text": text}


def build_status_blocks(job: SyncJob) -> Dict[str, Any]:
    """Message content (fallback ``text`` plus ``blocks``) describing the job's last run."""
    header = f"{job.icon} {job.job_type.value} > Slack Handle: `{job.slack_handle}`"
    if job.dryrun:
        header += DRY_RUN_MARKER

    blocks: List[Dict[str, Any]] = [{"type": "section", "text": _mrkdwn(header)}]
    if job.error is not None:
        blocks.append({"type": "section", "text": _mrkdwn(f":stop-sign: *Error:* {job.error}")})

    sources = "\n".join(f"<{s.html_url}|{s.name}>" for s in job.pagerduty_objects)
    blocks.append({
        "type": "section",
        "fields": [
            _mrkdwn(f"*PD Source*\n{sources}"),
            _mrkdwn(job.slack_info_message_body()),
            _mrkdwn(f":alarm_clock: *Next run:* {format_rfc822(job.next_run())}"),
        ],
    })
    blocks.append({"type": "divider"})
    return {"text": header, "blocks": blocks}


class StatusReporter:
    """Posts job status messages into the configured info channel."""

    def __init__(self, chat_api: ChatDirectoryAPI, channel_id: str):
        self.chat_api = chat_api
        self.channel_id = channel_id
        self.channel: Optional[ChatChannel] = None

    def validate_channel(self) -> ChatChannel:
        if not self.channel_id:
            raise ConfigurationError("slack info channel not configured")
        try:
            self.channel = self.chat_api.get_channel_info(self.channel_id)
        except ExternalServiceError as e:
            raise ConfigurationError(f"slack info channel '{self.channel_id}' not usable: {e}") from e
        logger.info("Status channel resolved", channel_id=self.channel.id, channel=self.channel.name)
        return self.channel

    def post(self, job: SyncJob) -> None:
        content = build_status_blocks(job)
        self.chat_api.post_message(self.channel_id, content)
        logger.debug("Status message posted", job_id=job.job_id, channel_id=self.channel_id)


__all__ = ["build_status_blocks", "StatusReporter", "DRY_RUN_MARKER"]
