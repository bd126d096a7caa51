"""
Pydantic schemas for the chat-platform (Slack) directory.
"""
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class ChatIdentity(BaseModel):
    """Slack user as needed for matching."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Slack user ID")
    email: str = Field("", description="Profile email")
    display_name: str = Field("", description="Normalized display name")
    deleted: bool = Field(False, description="Deactivated account")


class ChatGroup(BaseModel):
    """Slack user group. ``date_delete`` is 0 while the group is enabled."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Slack user group ID")
    handle: str = Field(description="Mention handle, e.g. 'oncall-sre'")
    name: str = ""
    member_ids: Tuple[str, ...] = Field(default_factory=tuple)
    date_delete: int = Field(0, description="Epoch seconds the group was disabled at")

    @property
    def is_disabled(self) -> bool:
        return self.date_delete != 0

    @property
    def member_count(self) -> int:
        return len(self.member_ids)


class ChatChannel(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""


__all__ = ["ChatIdentity", "ChatGroup", "ChatChannel"]
