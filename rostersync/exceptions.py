"""
Sync exceptions.

Aborting errors are raised and propagate to the job / scheduler; each carries
the context (operation, handle or object ID) needed to log it meaningfully.
"""
from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base exception for all roster sync errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(SyncError):
    """Invalid configuration (bad cron expression, duration or YAML file)."""


class ExternalServiceError(SyncError):
    """A call to PagerDuty or Slack failed."""

    def __init__(
        self,
        service: str,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
        rate_limited: bool = False,
    ):
        self.service = service
        self.operation = operation
        self.status_code = status_code
        self.rate_limited = rate_limited
        super().__init__(f"{service}: {operation} failed: {message}")


class ExternalNotFoundError(ExternalServiceError):
    """The requested object does not exist on the external service."""


class RosterResolutionError(SyncError):
    """Team or schedule roster could not be resolved; no partial result."""

    def __init__(self, message: str, object_id: Optional[str] = None):
        self.object_id = object_id
        super().__init__(message)


class EmptyRosterError(SyncError):
    """No on-call data was given to match against the chat directory."""

    def __init__(self):
        super().__init__("empty roster given; check shift schedule")


class GroupNotFoundError(SyncError):
    """No chat user group with the given handle exists in the directory."""

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"finding group handle '{handle}' failed; check config")


class EmptyTargetError(SyncError):
    """Reconcile called with nobody to put in the group (use disable instead)."""

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"target member list for group '{handle}' is empty; no update done")


class GroupUpdateError(SyncError):
    """A write against a chat user group failed."""

    def __init__(self, handle: str, operation: str, cause: Exception):
        self.handle = handle
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} for group '{handle}' failed: {cause}")


class DirectoryRefreshError(SyncError):
    """Loading the chat directory snapshot failed; the previous one stays active."""


class SyncJobError(SyncError):
    """A sync job step failed; wraps the underlying error."""

    def __init__(self, job_id: str, message: str):
        self.job_id = job_id
        super().__init__(message)


class JobAlreadyRunningError(SyncError):
    """A job's run() was invoked while a previous run is still in flight."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"job '{job_id}' is already running")


__all__ = [
    "SyncError",
    "ConfigurationError",
    "ExternalServiceError",
    "ExternalNotFoundError",
    "RosterResolutionError",
    "EmptyRosterError",
    "GroupNotFoundError",
    "EmptyTargetError",
    "GroupUpdateError",
    "DirectoryRefreshError",
    "SyncJobError",
    "JobAlreadyRunningError",
]
