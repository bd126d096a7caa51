"""
Slack Web API integration.

Reads (users, user groups, channels) and chat posts use the bot token; user
group writes need a user token with ``usergroups:write``. Slack answers HTTP
200 with ``ok: false`` on most failures, so both layers are checked.
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence

import httpx

from rostersync.config import HTTP_TIMEOUT_SECONDS, SLACK_API_URL, SLACK_PAGE_SIZE
from rostersync.exceptions import ExternalNotFoundError, ExternalServiceError
from rostersync.integrations.base import ChatDirectoryAPI
from rostersync.models.schemas.chat import ChatChannel, ChatGroup, ChatIdentity
from rostersync.utils import get_logger

SERVICE = "slack"


def identity_from_member(raw: Dict[str, Any]) -> ChatIdentity:
    profile = raw.get("profile") or {}
    display = (
        profile.get("display_name_normalized")
        or profile.get("real_name_normalized")
        or raw.get("real_name")
        or raw.get("name")
        or ""
    )
    return ChatIdentity(
        id=raw["id"],
        email=profile.get("email") or "",
        display_name=display,
        deleted=bool(raw.get("deleted", False)),
    )


def group_from_usergroup(raw: Dict[str, Any]) -> ChatGroup:
    return ChatGroup(
        id=raw["id"],
        handle=raw.get("handle") or "",
        name=raw.get("name") or "",
        member_ids=tuple(raw.get("users") or ()),
        date_delete=int(raw.get("date_delete") or 0),
    )


class SlackClient(ChatDirectoryAPI):
    """ChatDirectoryAPI backed by slack.com/api."""

    def __init__(
        self,
        bot_token: str,
        user_token: str = "",
        *,
        base_url: str = SLACK_API_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        page_size: int = SLACK_PAGE_SIZE,
        transport: httpx.BaseTransport | None = None,
    ):
        self._bot_token = bot_token
        # Without a user token writes fall back to the bot token; Slack rejects
        # them with not_allowed_token_type unless the workspace permits it.
        self._user_token = user_token or bot_token
        self._client = httpx.Client(base_url=base_url.rstrip("/") + "/", timeout=timeout, transport=transport)
        self.page_size = page_size
        self.logger = get_logger(f"integration.{SERVICE}")

    def close(self) -> None:
        self._client.close()

    # ----------------------------- transport ----------------------------- #
    def _call(
        self,
        method: str,
        *,
        token: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if data is None and json_body is None:
                resp = self._client.get(method, params=params, headers=headers)
            else:
                resp = self._client.post(method, data=data, json=json_body, headers=headers)
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE, method, str(e)) from e

        if resp.status_code == 429:
            raise ExternalServiceError(
                SERVICE,
                method,
                f"rate limited, retry after {resp.headers.get('Retry-After', '?')}s",
                status_code=429,
                rate_limited=True,
            )
        if resp.status_code >= 400:
            raise ExternalServiceError(SERVICE, method, f"HTTP {resp.status_code}", status_code=resp.status_code)
        try:
            payload = resp.json()
        except ValueError as e:
            raise ExternalServiceError(SERVICE, method, "invalid JSON response") from e

        if not payload.get("ok", False):
            error = payload.get("error") or "unknown_error"
            if error.endswith("_not_found") or error == "no_such_subteam":
                raise ExternalNotFoundError(SERVICE, method, error, status_code=resp.status_code)
            raise ExternalServiceError(SERVICE, method, error, status_code=resp.status_code)
        return payload

    def _paginate(self, method: str, key: str, params: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
        cursor = ""
        while True:
            page_params = {**params, "limit": self.page_size}
            if cursor:
                page_params["cursor"] = cursor
            payload = self._call(method, token=self._bot_token, params=page_params)
            yield from payload.get(key) or []
            cursor = (payload.get("response_metadata") or {}).get("next_cursor") or ""
            if not cursor:
                return

    # ------------------------------- reads ------------------------------- #
    def list_all_users(self) -> List[ChatIdentity]:
        users = [identity_from_member(m) for m in self._paginate("users.list", "members", {})]
        self.logger.debug("Listed Slack users", count=len(users))
        return users

    def list_all_user_groups(self, include_members: bool = True) -> List[ChatGroup]:
        params = {
            "include_users": "true" if include_members else "false",
            "include_disabled": "true",
        }
        payload = self._call("usergroups.list", token=self._bot_token, params=params)
        return [group_from_usergroup(g) for g in payload.get("usergroups") or []]

    def get_channel_info(self, channel_id: str) -> ChatChannel:
        payload = self._call("conversations.info", token=self._bot_token, params={"channel": channel_id})
        channel = payload.get("channel") or {}
        return ChatChannel(id=channel.get("id") or channel_id, name=channel.get("name") or "")

    # ------------------------------- writes ------------------------------ #
    def replace_group_members(self, group_id: str, member_ids: Sequence[str]) -> ChatGroup:
        payload = self._call(
            "usergroups.users.update",
            token=self._user_token,
            data={"usergroup": group_id, "users": ",".join(member_ids)},
        )
        return group_from_usergroup(payload["usergroup"])

    def enable_group(self, group_id: str) -> ChatGroup:
        payload = self._call("usergroups.enable", token=self._user_token, data={"usergroup": group_id})
        return group_from_usergroup(payload["usergroup"])

    def disable_group(self, group_id: str) -> ChatGroup:
        payload = self._call("usergroups.disable", token=self._user_token, data={"usergroup": group_id})
        return group_from_usergroup(payload["usergroup"])

    def post_message(self, channel_id: str, content: dict) -> None:
        body = {"channel": channel_id, **content}
        self._call("chat.postMessage", token=self._bot_token, json_body=body)


__all__ = ["SlackClient", "identity_from_member", "group_from_usergroup"]
