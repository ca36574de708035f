"""Watcher subsystem for the filesystem source."""
from .channel import ChangeStream
from .types import CHANGE_KINDS, WatcherState, collapse_changes, group_by_path, settle_deletion

__all__ = [
    "CHANGE_KINDS",
    "ChangeStream",
    "WatcherState",
    "collapse_changes",
    "group_by_path",
    "settle_deletion",
]
