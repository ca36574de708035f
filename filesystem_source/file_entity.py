"""Builds :class:`FileRecord` objects from filesystem stat results."""
from __future__ import annotations

import os
from datetime import datetime
from typing import Any
from urllib.parse import quote, unquote, urlsplit

from .models import ChangeKind, FileRecord, PathStyle

_STAT_INTERNALS = {"n_fields", "n_sequence_fields", "n_unnamed_fields"}


def create_file_url(path: str | os.PathLike[str], path_style: PathStyle) -> str:
    """Return the ``file://`` URL for an absolute *path*."""

    value = os.fspath(path)
    if path_style is PathStyle.WINDOWS:
        value = value.replace("\\", "/")
    if not value.startswith("/"):
        value = "/" + value
    return "file://" + quote(value, safe="/:")


def file_url_to_path(url: str, path_style: PathStyle) -> str:
    """Inverse of :func:`create_file_url`."""

    parts = urlsplit(url)
    path = unquote(parts.path)
    if path_style is PathStyle.WINDOWS:
        if len(path) > 2 and path[0] == "/" and path[2] == ":":
            path = path[1:]
        return path.replace("/", "\\")
    return path


def create_metadata(stats: Any) -> dict[str, Any]:
    """Copy every non-callable public attribute of *stats*."""

    if isinstance(stats, os.stat_result):
        return {name: getattr(stats, name) for name in dir(stats) if name.startswith("st_")}

    if isinstance(stats, dict):
        items = stats.items()
    else:
        items = ((name, getattr(stats, name, None)) for name in dir(stats))

    return {
        name: value
        for name, value in items
        if not name.startswith("_") and not callable(value) and name not in _STAT_INTERNALS
    }


def _timestamp(stats: Any, *names: str) -> datetime | None:
    for name in names:
        value = getattr(stats, name, None)
        if isinstance(value, datetime):
            return value
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value)
    return None


def build_file_record(
    path: str,
    absolute_path: str | os.PathLike[str],
    stats: Any = None,
    change: ChangeKind | None = None,
    *,
    path_style: PathStyle,
) -> FileRecord:
    """Create a content-less record for the file at *absolute_path*.

    *path* is relative to the source directory and uses ``/`` separators. Timestamps
    and metadata are only populated when *stats* is supplied; deletions are
    built without one.
    """

    record = FileRecord(
        path=path,
        source=create_file_url(absolute_path, path_style),
        change=change,
    )
    if stats is not None:
        record.created_at = _timestamp(stats, "st_birthtime", "st_ctime")
        record.modified_at = _timestamp(stats, "st_mtime")
        record.metadata = create_metadata(stats)
    return record


__all__ = ["build_file_record", "create_file_url", "create_metadata", "file_url_to_path"]
