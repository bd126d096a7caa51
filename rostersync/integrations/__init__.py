"""
Integrations package initialization.
Exports the capability interfaces and their HTTP implementations.
"""
from .base import ChatDirectoryAPI, IncidentRosterAPI
from .pagerduty import PagerDutyClient
from .slack import SlackClient

__all__ = [
    "ChatDirectoryAPI",
    "IncidentRosterAPI",
    "PagerDutyClient",
    "SlackClient",
]
