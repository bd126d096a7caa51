"""
Pydantic schemas for the incident-management (PagerDuty) side of a sync.

All models are frozen: a resolution produces fresh objects and nothing
downstream mutates them.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ObjectReference(BaseModel):
    """Summary form of a PagerDuty object as embedded in other payloads."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="PagerDuty object ID")
    summary: str = Field("", description="Short human readable name")
    html_url: str = Field("", description="Deep link into the PagerDuty web UI")


class RosterEntry(BaseModel):
    """A person on the roster, with the contact details needed for matching."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="PagerDuty user ID")
    name: str = Field("", description="Display name")
    email: str = Field("", description="Login email; empty means unmatchable")
    has_phone: bool = Field(False, description="User has a phone contact method")
    has_email: bool = Field(False, description="User has an email contact method")
    html_url: str = Field("", description="Deep link to the user profile")

    @classmethod
    def from_reference(cls, ref: ObjectReference) -> "RosterEntry":
        """Minimal entry for a user whose detail lookup failed."""
        return cls(id=ref.id, name=ref.summary, html_url=ref.html_url)


class SourceObject(BaseModel):
    """Team or schedule a roster was derived from (reporting only)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    html_url: str = ""


class TimeWindow(BaseModel):
    """Absolute UTC interval sent to PagerDuty."""

    model_config = ConfigDict(frozen=True)

    since: datetime
    until: datetime


class OnCallEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: ObjectReference
    schedule: Optional[ObjectReference] = None
    escalation_level: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class RenderedScheduleEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: ObjectReference
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class ScheduleLayer(BaseModel):
    """A rotation tier (primary, secondary, ...) rendered for the requested window."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    rendered_schedule_entries: List[RenderedScheduleEntry] = Field(default_factory=list)


class ScheduleDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: SourceObject
    schedule_layers: List[ScheduleLayer] = Field(default_factory=list)


class ScheduleOverride(BaseModel):
    """Manual, time-bounded substitution of a schedule's rostered user."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    user: ObjectReference
    start: Optional[datetime] = None
    end: Optional[datetime] = None


__all__ = [
    "ObjectReference",
    "RosterEntry",
    "SourceObject",
    "TimeWindow",
    "OnCallEntry",
    "RenderedScheduleEntry",
    "ScheduleLayer",
    "ScheduleDetail",
    "ScheduleOverride",
]
