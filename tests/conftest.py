"""Pytest fixtures and fakes.

FakeRosterAPI / FakeChatAPI implement the integration ABCs in memory and record
every call, so tests can assert on which external operations were (not) made.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

import pytest

# Ensure project root on sys.path so 'rostersync' resolves without an editable install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from rostersync.exceptions import ExternalNotFoundError, ExternalServiceError
from rostersync.integrations.base import ChatDirectoryAPI, IncidentRosterAPI
from rostersync.models.schemas.chat import ChatChannel, ChatGroup, ChatIdentity
from rostersync.models.schemas.config import SyncJobConfig
from rostersync.models.schemas.roster import (
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
from rostersync.services.directory import DirectoryCache
from rostersync.services.group_reconciler import GroupReconciler
from rostersync.services.identity_matcher import IdentityMatcher
from rostersync.services.roster_resolver import RosterResolver

FIXED_NOW = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)
DISABLED_AT = 1_700_000_000


def fixed_clock() -> datetime:
    return FIXED_NOW


# ---------- builders ----------

def ref(user_id: str, summary: str = "") -> ObjectReference:
    return ObjectReference(id=user_id, summary=summary or user_id, html_url=f"https://pd.example/users/{user_id}")


def entry(user_id: str, email: str = "", *, has_phone: bool = True, name: str = "") -> RosterEntry:
    return RosterEntry(
        id=user_id,
        name=name or user_id,
        email=email,
        has_phone=has_phone,
        has_email=bool(email),
        html_url=f"https://pd.example/users/{user_id}",
    )


def identity(slack_id: str, email: str = "", *, deleted: bool = False) -> ChatIdentity:
    return ChatIdentity(id=slack_id, email=email, display_name=slack_id.lower(), deleted=deleted)


def schedule(schedule_id: str, *layers: Sequence[str], name: str = "") -> ScheduleDetail:
    return ScheduleDetail(
        source=SourceObject(id=schedule_id, name=name or schedule_id, html_url=f"https://pd.example/schedules/{schedule_id}"),
        schedule_layers=[
            ScheduleLayer(
                id=f"{schedule_id}-L{i}",
                name=f"Layer {i}",
                rendered_schedule_entries=[RenderedScheduleEntry(user=ref(u)) for u in users],
            )
            for i, users in enumerate(layers, start=1)
        ],
    )


def job_config(handle: str, object_ids: Sequence[str], cron: str = "*/10 * * * *", **options: Any) -> SyncJobConfig:
    return SyncJobConfig.model_validate({
        "crontabExpressionForRepetition": cron,
        "syncOptions": options,
        "syncObjects": {"slackGroupHandle": handle, "pdObjectIds": list(object_ids)},
    })


# ---------- fakes ----------

class FakeRosterAPI(IncidentRosterAPI):
    def __init__(self):
        self.team_members: Dict[str, List[RosterEntry]] = {}
        self.teams: Dict[str, SourceObject] = {}
        self.on_calls: List[OnCallEntry] = []
        self.schedules: Dict[str, ScheduleDetail] = {}
        self.overrides: Dict[str, List[ScheduleOverride]] = {}
        self.users: Dict[str, RosterEntry] = {}
        self.fail: Set[str] = set()
        self.calls: List[tuple] = []

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise ExternalServiceError("pagerduty", operation, "boom", status_code=500)

    def list_team_members(self, team_ids: Sequence[str]) -> List[RosterEntry]:
        self.calls.append(("list_team_members", tuple(team_ids)))
        self._check("list_team_members")
        members: Dict[str, RosterEntry] = {}
        for team_id in team_ids:
            for member in self.team_members.get(team_id, []):
                members.setdefault(member.id, member)
        return list(members.values())

    def get_team(self, team_id: str) -> SourceObject:
        self.calls.append(("get_team", team_id))
        self._check("get_team")
        if team_id not in self.teams:
            raise ExternalNotFoundError("pagerduty", "get team", f"/teams/{team_id} not found", status_code=404)
        return self.teams[team_id]

    def list_on_call_now(self, schedule_ids: Sequence[str], window: TimeWindow) -> List[OnCallEntry]:
        self.calls.append(("list_on_call_now", tuple(schedule_ids), window))
        self._check("list_on_call_now")
        return [e for e in self.on_calls if e.schedule is None or e.schedule.id in schedule_ids]

    def get_schedule(self, schedule_id: str, window: TimeWindow) -> ScheduleDetail:
        self.calls.append(("get_schedule", schedule_id, window))
        self._check("get_schedule")
        if schedule_id not in self.schedules:
            raise ExternalNotFoundError("pagerduty", "get schedule", f"/schedules/{schedule_id} not found", status_code=404)
        return self.schedules[schedule_id]

    def list_overrides(self, schedule_id: str, window: TimeWindow) -> List[ScheduleOverride]:
        self.calls.append(("list_overrides", schedule_id, window))
        self._check("list_overrides")
        return list(self.overrides.get(schedule_id, []))

    def get_user(self, user_id: str, include_contact_methods: bool = True) -> RosterEntry:
        self.calls.append(("get_user", user_id))
        self._check("get_user")
        if user_id not in self.users:
            raise ExternalNotFoundError("pagerduty", "get user", f"/users/{user_id} not found", status_code=404)
        return self.users[user_id]

    def called(self, operation: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == operation]


class FakeChatAPI(ChatDirectoryAPI):
    def __init__(self):
        self.users: List[ChatIdentity] = []
        self.groups: Dict[str, ChatGroup] = {}
        self.channels: Dict[str, ChatChannel] = {}
        self.posted: List[tuple] = []
        self.fail: Set[str] = set()
        self.calls: List[tuple] = []

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise ExternalServiceError("slack", operation, "fatal_error")

    def add_group(self, group_id: str, handle: str, members: Sequence[str] = (), date_delete: int = 0) -> ChatGroup:
        group = ChatGroup(id=group_id, handle=handle, name=handle, member_ids=tuple(members), date_delete=date_delete)
        self.groups[group_id] = group
        return group

    def list_all_users(self) -> List[ChatIdentity]:
        self.calls.append(("list_all_users",))
        self._check("list_all_users")
        return list(self.users)

    def list_all_user_groups(self, include_members: bool = True) -> List[ChatGroup]:
        self.calls.append(("list_all_user_groups", include_members))
        self._check("list_all_user_groups")
        return list(self.groups.values())

    def get_channel_info(self, channel_id: str) -> ChatChannel:
        self.calls.append(("get_channel_info", channel_id))
        if channel_id not in self.channels:
            raise ExternalNotFoundError("slack", "conversations.info", "channel_not_found")
        return self.channels[channel_id]

    def replace_group_members(self, group_id: str, member_ids: Sequence[str]) -> ChatGroup:
        self.calls.append(("replace_group_members", group_id, tuple(member_ids)))
        self._check("replace_group_members")
        updated = self.groups[group_id].model_copy(update={"member_ids": tuple(member_ids)})
        self.groups[group_id] = updated
        return updated

    # Slack answers usergroups.enable/disable without the users array.
    def enable_group(self, group_id: str) -> ChatGroup:
        self.calls.append(("enable_group", group_id))
        self._check("enable_group")
        updated = self.groups[group_id].model_copy(update={"date_delete": 0})
        self.groups[group_id] = updated
        return updated.model_copy(update={"member_ids": ()})

    def disable_group(self, group_id: str) -> ChatGroup:
        self.calls.append(("disable_group", group_id))
        self._check("disable_group")
        updated = self.groups[group_id].model_copy(update={"date_delete": DISABLED_AT})
        self.groups[group_id] = updated
        return updated.model_copy(update={"member_ids": ()})

    def post_message(self, channel_id: str, content: dict) -> None:
        self.calls.append(("post_message", channel_id))
        self._check("post_message")
        self.posted.append((channel_id, content))

    def called(self, operation: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == operation]

    @property
    def writes(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in {"replace_group_members", "enable_group", "disable_group"}]


# ---------- fixtures ----------

@pytest.fixture()
def roster_api() -> FakeRosterAPI:
    api = FakeRosterAPI()
    for e in (
        entry("P_ALICE", "alice@example.com"),
        entry("P_BOB", "bob@example.com", has_phone=False),
        entry("P_CAROL", "Carol@Example.com"),
        entry("P_DAVE", "dave@example.com"),
        entry("P_NOMAIL", ""),
    ):
        api.users[e.id] = e
    api.teams["T_SRE"] = SourceObject(id="T_SRE", name="SRE", html_url="https://pd.example/teams/T_SRE")
    api.teams["T_DB"] = SourceObject(id="T_DB", name="Databases", html_url="https://pd.example/teams/T_DB")
    api.team_members["T_SRE"] = [api.users["P_ALICE"], api.users["P_BOB"]]
    api.team_members["T_DB"] = [api.users["P_CAROL"], api.users["P_ALICE"]]
    api.schedules["S_PRIMARY"] = schedule("S_PRIMARY", ["P_ALICE", "P_BOB"], name="Primary")
    api.schedules["S_SECONDARY"] = schedule("S_SECONDARY", ["P_CAROL"], name="Secondary")
    return api


@pytest.fixture()
def chat_api() -> FakeChatAPI:
    api = FakeChatAPI()
    api.users = [
        identity("U_ALICE", "alice@example.com"),
        identity("U_BOB", "bob@example.com"),
        identity("U_CAROL", "carol@example.com"),
        identity("U_DAVE", "dave@example.com", deleted=True),
        identity("U_ERIN", "erin@example.com"),
        identity("U_ERIN2", "ERIN@example.com"),
    ]
    api.add_group("G_ONCALL", "oncall-sre", ["U_ALICE", "U_BOB"])
    api.add_group("G_TEAM", "team-sre", ["U_CAROL"])
    api.add_group("G_WEEKEND", "weekend-sre", [], date_delete=DISABLED_AT)
    api.channels["C_INFO"] = ChatChannel(id="C_INFO", name="oncall-info")
    return api


@pytest.fixture()
def directory(chat_api) -> DirectoryCache:
    cache = DirectoryCache(chat_api)
    cache.refresh()
    chat_api.calls.clear()
    return cache


@pytest.fixture()
def resolver(roster_api) -> RosterResolver:
    return RosterResolver(roster_api, clock=fixed_clock)


@pytest.fixture()
def matcher(directory) -> IdentityMatcher:
    return IdentityMatcher(directory)


@pytest.fixture()
def reconciler(chat_api, directory) -> GroupReconciler:
    return GroupReconciler(chat_api, directory)


@pytest.fixture()
def job_services(resolver, matcher, reconciler) -> Dict[str, Any]:
    return {"resolver": resolver, "matcher": matcher, "reconciler": reconciler, "clock": fixed_clock}


@pytest.fixture()
def on_call(roster_api):
    """Factory adding an on-call entry for a user on a schedule."""
    def _add(user_id: str, schedule_id: str, level: int = 1, summary: Optional[str] = None) -> OnCallEntry:
        e = OnCallEntry(user=ref(user_id, summary or user_id), schedule=ref(schedule_id), escalation_level=level)
        roster_api.on_calls.append(e)
        return e
    return _add
