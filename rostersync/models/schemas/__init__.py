"""
Pydantic schemas for roster data, chat directory data, config and the status API.
"""
from .base import ResponseBase
from .chat import ChatChannel, ChatGroup, ChatIdentity
from .config import (
    GlobalSettings,
    JobsSettings,
    PagerDutySettings,
    SlackSettings,
    SyncConfig,
    SyncJobConfig,
    SyncObjects,
    SyncOptions,
)
from .jobs import JobList, JobStatus
from .roster import (
    ObjectReference,
    OnCallEntry,
    RenderedScheduleEntry,
    RosterEntry,
    ScheduleDetail,
    ScheduleLayer,
    ScheduleOverride,
    SourceObject,
    TimeWindow,
)

__all__ = [
    "ResponseBase",
    "ChatChannel",
    "ChatGroup",
    "ChatIdentity",
    "GlobalSettings",
    "JobsSettings",
    "PagerDutySettings",
    "SlackSettings",
    "SyncConfig",
    "SyncJobConfig",
    "SyncObjects",
    "SyncOptions",
    "JobList",
    "JobStatus",
    "ObjectReference",
    "OnCallEntry",
    "RenderedScheduleEntry",
    "RosterEntry",
    "ScheduleDetail",
    "ScheduleLayer",
    "ScheduleOverride",
    "SourceObject",
    "TimeWindow",
]
