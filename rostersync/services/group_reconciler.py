"""Slack user group reconciliation.

``reconcile`` makes a group's membership equal to a target set with a single
full-replacement write, re-enabling the group when it was disabled. Writes are
independent side effects: a failed re-enable does not undo the membership
update. No retries happen here; the next scheduled run is the retry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from rostersync.exceptions import (
    EmptyTargetError,
    ExternalServiceError,
    GroupNotFoundError,
    GroupUpdateError,
)
from rostersync.integrations.base import ChatDirectoryAPI
from rostersync.models.schemas.chat import ChatGroup, ChatIdentity
from rostersync.services.directory import DirectoryCache
from rostersync.utils import get_logger, log_sync_event

logger = get_logger(__name__)


@dataclass(slots=True)
class ReconcileResult:
    no_change: bool
    group: ChatGroup
    added_ids: List[str] = field(default_factory=list)
    removed_ids: List[str] = field(default_factory=list)
    dryrun: bool = False

    @property
    def written(self) -> bool:
        return not (self.no_change or self.dryrun)


def _with_state(known: ChatGroup, response: ChatGroup) -> ChatGroup:
    # usergroups.enable/disable answer without the member list
    return known.model_copy(update={"date_delete": response.date_delete})


class GroupReconciler:
    def __init__(self, chat_api: ChatDirectoryAPI, directory: DirectoryCache):
        self.chat_api = chat_api
        self.directory = directory

    def get_group(self, group_handle: str) -> ChatGroup:
        group = self.directory.current().find_group(group_handle)
        if group is None:
            raise GroupNotFoundError(group_handle)
        return group

    def reconcile(
        self,
        group_handle: str,
        targets: Sequence[ChatIdentity],
        dryrun: bool,
        *,
        job_id: str | None = None,
    ) -> ReconcileResult:
        group = self.get_group(group_handle)
        if not targets:
            raise EmptyTargetError(group_handle)

        target_ids = list(dict.fromkeys(t.id for t in targets))
        current = set(group.member_ids)
        wanted = set(target_ids)
        added = [i for i in target_ids if i not in current]
        removed = [i for i in group.member_ids if i not in wanted]
        result = ReconcileResult(
            no_change=current == wanted,
            group=group,
            added_ids=added,
            removed_ids=removed,
            dryrun=dryrun,
        )
        if result.no_change:
            logger.debug("Group already up to date", handle=group.handle, members=len(current))
            return result
        if dryrun:
            logger.info("Dry run, group not updated", handle=group.handle, would_add=added, would_remove=removed)
            return result

        try:
            updated = self.chat_api.replace_group_members(group.id, target_ids)
        except ExternalServiceError as e:
            raise GroupUpdateError(group.handle, "update members", e) from e
        self.directory.replace_group(updated)
        log_sync_event(
            "group_members_replaced",
            {"handle": group.handle, "group_id": group.id, "members": target_ids},
            job_id=job_id,
        )

        after = set(updated.member_ids)
        enable_error: GroupUpdateError | None = None
        if updated.is_disabled:
            try:
                enabled = self.chat_api.enable_group(group.id)
            except ExternalServiceError as e:
                enable_error = GroupUpdateError(group.handle, "enable group", e)
                enable_error.__cause__ = e
            else:
                updated = _with_state(updated, enabled)
                self.directory.replace_group(updated)
                log_sync_event("group_enabled", {"handle": group.handle, "group_id": group.id}, job_id=job_id)

        result.removed_ids = [i for i in group.member_ids if i not in after]
        result.group = updated
        if result.removed_ids:
            log_sync_event(
                "members_removed",
                {"handle": group.handle, "group_id": group.id, "removed": result.removed_ids},
                job_id=job_id,
            )

        if enable_error is not None:
            raise enable_error
        return result

    def disable(self, group_handle: str, *, job_id: str | None = None) -> ChatGroup:
        """Disable the group; Slack keeps its member list."""
        group = self.get_group(group_handle)
        try:
            updated = _with_state(group, self.chat_api.disable_group(group.id))
        except ExternalServiceError as e:
            raise GroupUpdateError(group.handle, "disable group", e) from e
        self.directory.replace_group(updated)
        log_sync_event("group_disabled", {"handle": group.handle, "group_id": group.id}, job_id=job_id)
        return updated


__all__ = ["GroupReconciler", "ReconcileResult"]
