"""
PagerDuty REST API v2 integration.

Thin synchronous adapter: every method is one logical API call (following
offset pagination where the endpoint pages) mapped onto the roster schemas.
No retries; a failed call raises ExternalServiceError.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence

import httpx

from rostersync.config import HTTP_TIMEOUT_SECONDS, PAGERDUTY_API_URL, PAGERDUTY_PAGE_SIZE
from rostersync.exceptions import ExternalNotFoundError, ExternalServiceError
from rostersync.integrations.base import IncidentRosterAPI
from rostersync.models.enums import ContactMethodType
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
from rostersync.utils import get_logger

SERVICE = "pagerduty"
_PHONE_TYPES = {ContactMethodType.PHONE.value, ContactMethodType.PHONE_REFERENCE.value}
_EMAIL_TYPES = {ContactMethodType.EMAIL.value, ContactMethodType.EMAIL_REFERENCE.value}


def _timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _window_params(window: TimeWindow) -> Dict[str, str]:
    return {"since": _timestamp(window.since), "until": _timestamp(window.until)}


def _reference(raw: Optional[Dict[str, Any]]) -> Optional[ObjectReference]:
    if not raw or not raw.get("id"):
        return None
    return ObjectReference(
        id=raw["id"],
        summary=raw.get("summary") or raw.get("name") or "",
        html_url=raw.get("html_url") or "",
    )


def _source(raw: Dict[str, Any]) -> SourceObject:
    return SourceObject(
        id=raw["id"],
        name=raw.get("name") or raw.get("summary") or "",
        html_url=raw.get("html_url") or "",
    )


def roster_entry_from_user(raw: Dict[str, Any]) -> RosterEntry:
    """Map a PagerDuty user payload (with or without included contact methods)."""
    method_types = {m.get("type", "") for m in raw.get("contact_methods") or []}
    return RosterEntry(
        id=raw["id"],
        name=raw.get("name") or raw.get("summary") or "",
        email=raw.get("email") or "",
        has_phone=bool(method_types & _PHONE_TYPES),
        has_email=bool(method_types & _EMAIL_TYPES),
        html_url=raw.get("html_url") or "",
    )


class PagerDutyClient(IncidentRosterAPI):
    """IncidentRosterAPI backed by api.pagerduty.com."""

    def __init__(
        self,
        auth_token: str,
        *,
        api_user: str = "",
        base_url: str = PAGERDUTY_API_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        page_size: int = PAGERDUTY_PAGE_SIZE,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {
            "Authorization": f"Token token={auth_token}",
            "Accept": "application/vnd.pagerduty+json;version=2",
        }
        if api_user:
            headers["From"] = api_user
        self._client = httpx.Client(base_url=base_url, headers=headers, timeout=timeout, transport=transport)
        self.page_size = page_size
        self.logger = get_logger(f"integration.{SERVICE}")

    def close(self) -> None:
        self._client.close()

    # ----------------------------- transport ----------------------------- #
    def _get(self, operation: str, path: str, params: Any = None) -> Dict[str, Any]:
        try:
            resp = self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE, operation, str(e)) from e
        if resp.status_code == 404:
            raise ExternalNotFoundError(SERVICE, operation, f"{path} not found", status_code=404)
        if resp.status_code >= 400:
            raise ExternalServiceError(
                SERVICE,
                operation,
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
                rate_limited=resp.status_code == 429,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ExternalServiceError(SERVICE, operation, "invalid JSON response") from e

    def _paginate(self, operation: str, path: str, key: str, params: List[tuple]) -> Iterator[Dict[str, Any]]:
        offset = 0
        while True:
            page = self._get(operation, path, params + [("limit", self.page_size), ("offset", offset)])
            items = page.get(key) or []
            yield from items
            if not page.get("more") or not items:
                return
            offset += len(items)

    # ------------------------------- API -------------------------------- #
    def list_team_members(self, team_ids: Sequence[str]) -> List[RosterEntry]:
        params: List[tuple] = [("team_ids[]", t) for t in team_ids]
        params += [("include[]", "contact_methods"), ("include[]", "notification_rules")]
        users = [roster_entry_from_user(u) for u in self._paginate("list users", "/users", "users", params)]
        self.logger.debug("Listed team members", team_ids=list(team_ids), count=len(users))
        return users

    def get_team(self, team_id: str) -> SourceObject:
        data = self._get("get team", f"/teams/{team_id}")
        return _source(data["team"])

    def list_on_call_now(self, schedule_ids: Sequence[str], window: TimeWindow) -> List[OnCallEntry]:
        params: List[tuple] = [("schedule_ids[]", s) for s in schedule_ids]
        params += list(_window_params(window).items())
        entries: List[OnCallEntry] = []
        for raw in self._paginate("list on-calls", "/oncalls", "oncalls", params):
            user = _reference(raw.get("user"))
            if user is None:
                continue
            entries.append(OnCallEntry(
                user=user,
                schedule=_reference(raw.get("schedule")),
                escalation_level=raw.get("escalation_level"),
                start=raw.get("start"),
                end=raw.get("end"),
            ))
        return entries

    def get_schedule(self, schedule_id: str, window: TimeWindow) -> ScheduleDetail:
        params = {"time_zone": "UTC", **_window_params(window)}
        raw = self._get("get schedule", f"/schedules/{schedule_id}", params)["schedule"]
        layers: List[ScheduleLayer] = []
        for layer in raw.get("schedule_layers") or []:
            rendered = []
            for entry in layer.get("rendered_schedule_entries") or []:
                user = _reference(entry.get("user"))
                if user is not None:
                    rendered.append(RenderedScheduleEntry(user=user, start=entry.get("start"), end=entry.get("end")))
            layers.append(ScheduleLayer(
                id=layer.get("id") or "",
                name=layer.get("name") or "",
                rendered_schedule_entries=rendered,
            ))
        return ScheduleDetail(source=_source(raw), schedule_layers=layers)

    def list_overrides(self, schedule_id: str, window: TimeWindow) -> List[ScheduleOverride]:
        data = self._get("list overrides", f"/schedules/{schedule_id}/overrides", _window_params(window))
        overrides: List[ScheduleOverride] = []
        for raw in data.get("overrides") or []:
            user = _reference(raw.get("user"))
            if user is None:
                continue
            overrides.append(ScheduleOverride(
                id=raw.get("id") or "",
                user=user,
                start=raw.get("start"),
                end=raw.get("end"),
            ))
        return overrides

    def get_user(self, user_id: str, include_contact_methods: bool = True) -> RosterEntry:
        params = [("include[]", "contact_methods")] if include_contact_methods else None
        data = self._get("get user", f"/users/{user_id}", params)
        return roster_entry_from_user(data["user"])


__all__ = ["PagerDutyClient", "roster_entry_from_user"]
