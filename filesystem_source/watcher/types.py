"""Shared type definitions for the watcher subsystem."""
from __future__ import annotations

from enum import Enum, auto
from typing import AsyncIterator, Callable, Iterable

from watchfiles import Change

from ..models import ChangeKind


class WatcherState(Enum):
    """Lifecycle of a :class:`~filesystem_source.realtime_watcher.Watcher`."""

    IDLE = auto()
    WATCHING = auto()
    DISPOSED = auto()


CHANGE_KINDS: dict[Change, ChangeKind] = {
    Change.added: ChangeKind.CREATED,
    Change.modified: ChangeKind.MODIFIED,
    Change.deleted: ChangeKind.DELETED,
}

RawChanges = set[tuple[Change, str]]

# Same call shape as ``watchfiles.awatch``.
BackendFactory = Callable[..., AsyncIterator[RawChanges]]


def collapse_changes(changes: Iterable[Change]) -> list[Change]:
    """Deduplicate the changes one batch reported for a single path.

    A modification reported together with the creation is dropped, since the
    created record already carries the current contents.
    """

    ordered = sorted(set(changes))
    if Change.added in ordered and Change.modified in ordered:
        ordered.remove(Change.modified)
    return ordered


def group_by_path(changes: Iterable[tuple[Change, str]]) -> dict[str, list[Change]]:
    grouped: dict[str, list[Change]] = {}
    for change, path in changes:
        grouped.setdefault(path, []).append(change)
    return {path: collapse_changes(kinds) for path, kinds in sorted(grouped.items())}


def settle_deletion(changes: Iterable[Change], *, exists: bool) -> list[Change]:
    """Order a batch that reports a deletion alongside other changes for one path.

    The set watchfiles delivers does not say which came last. If the file is
    still there it was deleted and then written again, so the deletion goes
    first. If it is gone, only the deletion is reported.
    """

    changes = collapse_changes(changes)
    if not exists:
        return [Change.deleted] if Change.deleted in changes else []
    rest = [change for change in changes if change is not Change.deleted]
    if Change.deleted not in changes:
        return rest
    return [Change.deleted, *rest]


__all__ = [
    "BackendFactory",
    "CHANGE_KINDS",
    "RawChanges",
    "WatcherState",
    "collapse_changes",
    "group_by_path",
    "settle_deletion",
]
