"""Error types raised by the filesystem source."""
from __future__ import annotations

import errno
import os
from dataclasses import dataclass
from typing import Any


class FileSystemSourceError(Exception):
    """Base class for errors raised by this package."""


@dataclass(eq=False)
class ValidationError(FileSystemSourceError, ValueError):
    """Raised when a configuration value is missing or malformed."""

    field: str
    value: Any
    reason: str

    def __str__(self) -> str:
        return f"Invalid {self.field}: {self.value!r}. {self.reason}"


class NotFoundError(FileSystemSourceError, FileNotFoundError):
    """The configured path (or the directory part of a glob) does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(errno.ENOENT, os.strerror(errno.ENOENT), path)
        self.path = path


class FilterError(FileSystemSourceError):
    """A filter predicate raised while evaluating a file."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"Filter failed for {path}: {cause}")
        self.path = path
        self.cause = cause


__all__ = ["FileSystemSourceError", "FilterError", "NotFoundError", "ValidationError"]
