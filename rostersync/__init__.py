"""Roster sync service package.

Keeps Slack user groups in line with PagerDuty on-call schedules and team
memberships.
"""

__all__: list[str] = []
