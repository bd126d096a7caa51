"""Central Enum definitions for sync configuration and job kinds.

These replace scattered string literals so the YAML config, the jobs and the
status API agree on the same values.
"""
from __future__ import annotations
import enum


class SyncStyle(str, enum.Enum):
    """Which schedule layers decide who is on shift."""
    FINAL_LAYER = "FinalLayer"
    OVERRIDES_ONLY_IF_THERE = "OverridesOnlyIfThere"
    ALL_ACTIVE_LAYERS = "AllActiveLayers"


class JobType(str, enum.Enum):
    SCHEDULE_SYNC = "PD Schedule"
    TEAM_SYNC = "PD Team"


class ContactMethodType(str, enum.Enum):
    PHONE = "phone_contact_method"
    PHONE_REFERENCE = "phone_contact_method_reference"
    EMAIL = "email_contact_method"
    EMAIL_REFERENCE = "email_contact_method_reference"


__all__ = [
    "SyncStyle",
    "JobType",
    "ContactMethodType",
]
