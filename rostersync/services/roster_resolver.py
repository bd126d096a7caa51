"""Roster resolution against the incident-management service.

Team resolution and schedule metadata are all-or-nothing: one failing team or
schedule aborts with RosterResolutionError. Enriching a single on-call user
with contact details degrades instead (summary fields are used).
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from rostersync.exceptions import ExternalServiceError, RosterResolutionError
from rostersync.integrations.base import IncidentRosterAPI
from rostersync.models.enums import SyncStyle
from rostersync.models.schemas.roster import ObjectReference, RosterEntry, SourceObject, TimeWindow
from rostersync.utils import get_logger, utc_now

logger = get_logger(__name__)

Resolution = Tuple[List[RosterEntry], List[SourceObject]]


def without_phone(entries: Iterable[RosterEntry]) -> List[RosterEntry]:
    """Entries lacking a phone-type contact method."""
    return [e for e in entries if not e.has_phone]


class RosterResolver:
    def __init__(self, roster_api: IncidentRosterAPI, clock: Callable[[], datetime] = utc_now):
        self.roster_api = roster_api
        self.clock = clock

    # ----------------------------- teams ----------------------------- #
    def resolve_team_members(self, team_ids: Sequence[str]) -> Resolution:
        try:
            members = self.roster_api.list_team_members(team_ids)
        except ExternalServiceError as e:
            raise RosterResolutionError(f"listing members of teams {list(team_ids)} failed: {e}") from e

        sources: List[SourceObject] = []
        for team_id in team_ids:
            try:
                sources.append(self.roster_api.get_team(team_id))
            except ExternalServiceError as e:
                raise RosterResolutionError(f"getting team '{team_id}' failed: {e}", object_id=team_id) from e

        logger.debug("Resolved team members", team_ids=list(team_ids), members=len(members))
        return list(members), sources

    # ---------------------------- on-call ---------------------------- #
    def window(self, since: timedelta, until: timedelta) -> TimeWindow:
        now = self.clock()
        return TimeWindow(since=now - since, until=now + until)

    def resolve_on_call(
        self,
        schedule_ids: Sequence[str],
        since: timedelta,
        until: timedelta,
        style: SyncStyle = SyncStyle.FINAL_LAYER,
    ) -> Resolution:
        """Who is on shift in ``[now - since, now + until]`` for the given schedules."""
        window = self.window(since, until)
        if style == SyncStyle.FINAL_LAYER:
            return self._resolve_final_layer(schedule_ids, window)
        return self._resolve_layers(schedule_ids, window, overrides_only=style == SyncStyle.OVERRIDES_ONLY_IF_THERE)

    def _resolve_final_layer(self, schedule_ids: Sequence[str], window: TimeWindow) -> Resolution:
        try:
            on_calls = self.roster_api.list_on_call_now(schedule_ids, window)
        except ExternalServiceError as e:
            raise RosterResolutionError(f"listing on-calls for schedules {list(schedule_ids)} failed: {e}") from e

        users: Dict[str, ObjectReference] = {}
        for entry in on_calls:
            users.setdefault(entry.user.id, entry.user)
        roster = [self._enrich(ref) for ref in users.values()]

        sources: List[SourceObject] = []
        for schedule_id in schedule_ids:
            try:
                sources.append(self.roster_api.get_schedule(schedule_id, window).source)
            except ExternalServiceError as e:
                raise RosterResolutionError(
                    f"getting schedule '{schedule_id}' failed: {e}", object_id=schedule_id
                ) from e
        return roster, sources

    def _resolve_layers(self, schedule_ids: Sequence[str], window: TimeWindow, *, overrides_only: bool) -> Resolution:
        users: Dict[str, ObjectReference] = {}
        sources: List[SourceObject] = []
        for schedule_id in schedule_ids:
            try:
                schedule = self.roster_api.get_schedule(schedule_id, window)
                overrides = self.roster_api.list_overrides(schedule_id, window)
            except ExternalServiceError as e:
                raise RosterResolutionError(
                    f"getting schedule '{schedule_id}' failed: {e}", object_id=schedule_id
                ) from e
            sources.append(schedule.source)

            for override in overrides:
                users.setdefault(override.user.id, override.user)
            if overrides and overrides_only:
                logger.debug("Overrides present, skipping schedule layers", schedule_id=schedule_id,
                             overrides=len(overrides))
                continue

            for layer in schedule.schedule_layers:
                for rendered in layer.rendered_schedule_entries:
                    users.setdefault(rendered.user.id, rendered.user)

        roster = [self._enrich(ref) for ref in users.values()]
        return roster, sources

    def _enrich(self, ref: ObjectReference) -> RosterEntry:
        try:
            return self.roster_api.get_user(ref.id, include_contact_methods=True)
        except ExternalServiceError as e:
            logger.debug("User lookup failed, using summary fields", user_id=ref.id, error=str(e))
            return RosterEntry.from_reference(ref)


__all__ = ["RosterResolver", "without_phone"]
