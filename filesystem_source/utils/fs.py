"""Helpers for calling filesystem bindings from asyncio code."""
from __future__ import annotations

import asyncio
import inspect
import stat as stat_module
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from ..models import FileSystemBindings


async def call_binding(func: Callable[..., Any], *args: Any) -> Any:
    """Await an ``async def`` binding, or run a blocking one in a worker thread."""

    if inspect.iscoroutinefunction(func):
        return await func(*args)
    return await asyncio.to_thread(func, *args)


def as_bytes(contents: Any) -> bytes:
    """Coerce whatever a ``read_file`` binding returned into bytes."""

    if isinstance(contents, bytes):
        return contents
    if isinstance(contents, str):
        return contents.encode("utf-8")
    return bytes(contents)


def _check_mode(stats: Any, method: str, mode_test: Callable[[int], bool]) -> bool:
    check = getattr(stats, method, None)
    if callable(check):
        return bool(check())
    mode = getattr(stats, "st_mode", None)
    return mode is not None and mode_test(mode)


def is_file(stats: Any) -> bool:
    return _check_mode(stats, "is_file", stat_module.S_ISREG)


def is_dir(stats: Any) -> bool:
    return _check_mode(stats, "is_dir", stat_module.S_ISDIR)


def is_symlink(stats: Any) -> bool:
    return _check_mode(stats, "is_symlink", stat_module.S_ISLNK)


async def stat_entry(fs: FileSystemBindings, path: str) -> Any:
    """``lstat`` *path*, following it with ``stat`` when it is a symlink."""

    stats = await call_binding(fs.lstat, path)
    if is_symlink(stats):
        stats = await call_binding(fs.stat, path)
    return stats


__all__ = ["as_bytes", "call_binding", "is_dir", "is_file", "is_symlink", "stat_entry"]
