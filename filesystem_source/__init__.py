"""Filesystem source package exports."""

from .config import resolve_config
from .errors import FileSystemSourceError, FilterError, NotFoundError, ValidationError
from .models import ChangeKind, FileRecord, FileSystemBindings, FileSystemConfig, PathStyle, RunContext
from .realtime_watcher import Watcher
from .source import FileSystemSource, filesystem
from .watcher.channel import ChangeStream

__all__ = [
    "ChangeKind",
    "ChangeStream",
    "FileRecord",
    "FileSystemBindings",
    "FileSystemConfig",
    "FileSystemSource",
    "FileSystemSourceError",
    "FilterError",
    "NotFoundError",
    "PathStyle",
    "RunContext",
    "ValidationError",
    "Watcher",
    "filesystem",
    "resolve_config",
]
