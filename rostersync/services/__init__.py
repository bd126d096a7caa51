"""
Services package: directory cache, roster resolution, matching, reconciliation
and status reporting.
"""
from .directory import DirectoryCache, DirectorySnapshot
from .group_reconciler import GroupReconciler, ReconcileResult
from .identity_matcher import IdentityMatcher
from .roster_resolver import RosterResolver, without_phone

__all__ = [
    "DirectoryCache",
    "DirectorySnapshot",
    "GroupReconciler",
    "ReconcileResult",
    "IdentityMatcher",
    "RosterResolver",
    "without_phone",
]
