"""Core dataclasses shared across the filesystem source modules."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:
    from .filters import FilterCriteria


class ChangeKind(str, Enum):
    """Kind of change carried by a record produced from a watch event."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class PathStyle(str, Enum):
    """Separator convention used when converting paths to ``file://`` URLs."""

    POSIX = "posix"
    WINDOWS = "windows"

    @classmethod
    def current(cls) -> "PathStyle":
        return cls.WINDOWS if os.name == "nt" else cls.POSIX


@dataclass(slots=True)
class FileRecord:
    """A file handed to the pipeline, with or without its contents."""

    path: str
    source: str
    created_at: datetime | None = None
    modified_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    contents: bytes = b""
    change: ChangeKind | None = None

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix

    @property
    def size(self) -> int:
        return len(self.contents)

    @property
    def text(self) -> str:
        return self.contents.decode("utf-8")


FilterPredicate = Callable[[FileRecord], bool]


@dataclass(frozen=True, slots=True)
class FilePathInfo:
    """The configured path points at a single file."""

    absolute_path: Path
    directory: Path
    filename: str

    is_file = True


@dataclass(frozen=True, slots=True)
class DirectoryPathInfo:
    """The configured path points at a directory."""

    absolute_path: Path

    is_file = False

    @property
    def directory(self) -> Path:
        return self.absolute_path


ResolvedPath = Union[FilePathInfo, DirectoryPathInfo]


def _read_bytes(path: str | os.PathLike[str]) -> bytes:
    with open(path, "rb") as handle:
        return handle.read()


@dataclass(frozen=True, slots=True)
class FileSystemBindings:
    """Filesystem primitives used for every stat, listing and read.

    Each slot may be a plain function (run in a worker thread) or an
    ``async def`` function (awaited directly).
    """

    stat: Callable[..., Any] = os.stat
    lstat: Callable[..., Any] = os.lstat
    list_directory: Callable[..., Any] = os.listdir
    read_file: Callable[..., Any] = _read_bytes


@dataclass(slots=True)
class FileSystemConfig:
    """User-facing configuration for :func:`filesystem_source.filesystem`."""

    path: str
    depth: bool | int | None = None
    filter: Any = None
    fs: FileSystemBindings | dict[str, Any] | None = None
    path_style: PathStyle | str | None = None
    debounce: int | None = None


@dataclass(frozen=True, slots=True)
class Configuration:
    """Validated and normalized configuration."""

    path: str
    depth: int | None
    criteria: "FilterCriteria"
    filter: FilterPredicate
    fs: FileSystemBindings = field(default_factory=FileSystemBindings)
    path_style: PathStyle = field(default_factory=PathStyle.current)
    debounce: int = 1600


@dataclass(frozen=True, slots=True)
class RunContext:
    """Per-run values supplied by the host engine."""

    cwd: Path = field(default_factory=Path.cwd)
    concurrency: int = field(default_factory=lambda: os.cpu_count() or 4)


__all__ = [
    "ChangeKind",
    "Configuration",
    "DirectoryPathInfo",
    "FilePathInfo",
    "FileRecord",
    "FileSystemBindings",
    "FileSystemConfig",
    "FilterPredicate",
    "PathStyle",
    "ResolvedPath",
    "RunContext",
]
