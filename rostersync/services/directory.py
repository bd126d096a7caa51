"""Cached Slack directory (users + user groups).

The cache holds one immutable :class:`DirectorySnapshot` behind a single
reference. ``refresh()`` builds the replacement without holding the lock and
swaps the reference under it, so readers always see users and groups from the
same load.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from rostersync.exceptions import DirectoryRefreshError, ExternalServiceError
from rostersync.integrations.base import ChatDirectoryAPI
from rostersync.models.schemas.chat import ChatGroup, ChatIdentity
from rostersync.utils import get_logger, log_performance, utc_now

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DirectorySnapshot:
    users: Tuple[ChatIdentity, ...] = ()
    groups: Tuple[ChatGroup, ...] = ()
    loaded_at: Optional[datetime] = None
    _by_email: Dict[str, Tuple[ChatIdentity, ...]] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def build(cls, users: List[ChatIdentity], groups: List[ChatGroup], loaded_at: datetime) -> "DirectorySnapshot":
        by_email: Dict[str, List[ChatIdentity]] = {}
        for user in users:
            if user.email:
                by_email.setdefault(user.email.casefold(), []).append(user)
        return cls(
            users=tuple(users),
            groups=tuple(groups),
            loaded_at=loaded_at,
            _by_email={k: tuple(v) for k, v in by_email.items()},
        )

    def users_by_email(self, email: str) -> Tuple[ChatIdentity, ...]:
        """All identities (deleted ones included) whose email matches case-insensitively."""
        if not email:
            return ()
        return self._by_email.get(email.casefold(), ())

    def find_group(self, handle: str) -> Optional[ChatGroup]:
        wanted = handle.casefold()
        for group in self.groups:
            if group.handle.casefold() == wanted:
                return group
        return None

    def with_group(self, updated: ChatGroup) -> "DirectorySnapshot":
        groups = tuple(updated if g.id == updated.id else g for g in self.groups)
        if not any(g.id == updated.id for g in self.groups):
            groups += (updated,)
        return replace(self, groups=groups)


class DirectoryCache:
    """Thread-safe holder of the current directory snapshot.

    Starts empty; the first ``refresh()`` happens at service start.
    """

    def __init__(self, chat_api: ChatDirectoryAPI):
        self.chat_api = chat_api
        self._lock = threading.Lock()
        self._snapshot = DirectorySnapshot()

    def current(self) -> DirectorySnapshot:
        with self._lock:
            return self._snapshot

    def refresh(self) -> DirectorySnapshot:
        """Reload users and groups. On failure the previous snapshot stays active."""
        started = time.perf_counter()
        try:
            users = self.chat_api.list_all_users()
            groups = self.chat_api.list_all_user_groups(include_members=True)
        except ExternalServiceError as e:
            logger.error("Directory refresh failed; keeping previous snapshot", error=str(e))
            raise DirectoryRefreshError(f"refresh chat directory: {e}") from e

        snapshot = DirectorySnapshot.build(users, groups, utc_now())
        with self._lock:
            self._snapshot = snapshot
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        log_performance("directory_refresh", duration_ms, {"users": len(users), "groups": len(groups)})
        logger.info("Directory snapshot refreshed", users=len(users), groups=len(groups))
        return snapshot

    def replace_group(self, group: ChatGroup) -> None:
        """Write an updated group back into the snapshot (copy-on-write)."""
        with self._lock:
            self._snapshot = self._snapshot.with_group(group)


__all__ = ["DirectorySnapshot", "DirectoryCache"]
