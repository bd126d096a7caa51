"""
Pydantic schemas exposing job outcomes through the status API.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from rostersync.models.enums import JobType
from rostersync.models.schemas.chat import ChatIdentity
from rostersync.models.schemas.roster import RosterEntry, SourceObject


class JobStatus(BaseModel):
    """Read-only view of one sync job and its last run."""

    job_id: str
    name: str
    job_type: JobType
    slack_handle: str
    dryrun: bool
    running: bool = False
    next_run: Optional[datetime] = None
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    no_change: Optional[bool] = Field(None, description="None until a reconcile step completed")
    error: Optional[str] = None
    sources: List[SourceObject] = Field(default_factory=list)
    roster: List[RosterEntry] = Field(default_factory=list)
    matched: List[ChatIdentity] = Field(default_factory=list)


class JobList(BaseModel):
    jobs: List[JobStatus] = Field(default_factory=list)
    total: int = 0
