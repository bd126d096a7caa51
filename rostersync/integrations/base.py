from abc import ABC, abstractmethod
from typing import List, Sequence

from rostersync.models.schemas.chat import ChatChannel, ChatGroup, ChatIdentity
from rostersync.models.schemas.roster import (
    OnCallEntry,
    RosterEntry,
    ScheduleDetail,
    ScheduleOverride,
    SourceObject,
    TimeWindow,
)


class IncidentRosterAPI(ABC):
    """Read access to teams, schedules and users of the incident-management service.

    Implementations raise ExternalServiceError (ExternalNotFoundError for
    unknown IDs) instead of returning partial data.
    """

    @abstractmethod
    def list_team_members(self, team_ids: Sequence[str]) -> List[RosterEntry]:
        """All users that belong to any of the given teams, one call for all IDs."""

    @abstractmethod
    def get_team(self, team_id: str) -> SourceObject:
        pass

    @abstractmethod
    def list_on_call_now(self, schedule_ids: Sequence[str], window: TimeWindow) -> List[OnCallEntry]:
        """Final (override + layer resolved) on-call entries within the window."""

    @abstractmethod
    def get_schedule(self, schedule_id: str, window: TimeWindow) -> ScheduleDetail:
        """Schedule metadata with its layers rendered for the window."""

    @abstractmethod
    def list_overrides(self, schedule_id: str, window: TimeWindow) -> List[ScheduleOverride]:
        pass

    @abstractmethod
    def get_user(self, user_id: str, include_contact_methods: bool = True) -> RosterEntry:
        pass


class ChatDirectoryAPI(ABC):
    """Directory reads and user-group writes on the chat platform."""

    @abstractmethod
    def list_all_users(self) -> List[ChatIdentity]:
        pass

    @abstractmethod
    def list_all_user_groups(self, include_members: bool = True) -> List[ChatGroup]:
        pass

    @abstractmethod
    def get_channel_info(self, channel_id: str) -> ChatChannel:
        pass

    @abstractmethod
    def replace_group_members(self, group_id: str, member_ids: Sequence[str]) -> ChatGroup:
        """Set the complete member list of a group; returns the updated group."""

    @abstractmethod
    def enable_group(self, group_id: str) -> ChatGroup:
        pass

    @abstractmethod
    def disable_group(self, group_id: str) -> ChatGroup:
        pass

    @abstractmethod
    def post_message(self, channel_id: str, content: dict) -> None:
        """Post a message; ``content`` holds ``text`` and optionally ``blocks``."""
