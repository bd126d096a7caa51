"""Map roster entries onto Slack identities by email."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from rostersync.exceptions import EmptyRosterError
from rostersync.models.schemas.chat import ChatIdentity
from rostersync.models.schemas.roster import RosterEntry
from rostersync.services.directory import DirectoryCache
from rostersync.utils import get_logger

logger = get_logger(__name__)


class IdentityMatcher:
    def __init__(self, directory: DirectoryCache):
        self.directory = directory

    def match_to_chat(self, roster: Optional[Sequence[RosterEntry]]) -> List[ChatIdentity]:
        """Every non-deleted Slack identity sharing an email with a roster entry.

        An entry may match several identities (Slack does not enforce unique
        emails); all are kept, de-duplicated by Slack ID in first-seen order.
        Raises EmptyRosterError for a missing or empty roster.
        """
        if not roster:
            raise EmptyRosterError()

        snapshot = self.directory.current()
        matched: Dict[str, ChatIdentity] = {}
        for entry in roster:
            if not entry.email:
                logger.info("Roster entry has no email, skipping", user_id=entry.id, name=entry.name)
                continue
            hits = [u for u in snapshot.users_by_email(entry.email) if not u.deleted]
            if not hits:
                logger.debug("No Slack identity for roster entry", user_id=entry.id, email=entry.email)
            for identity in hits:
                matched.setdefault(identity.id, identity)
        return list(matched.values())


__all__ = ["IdentityMatcher"]
