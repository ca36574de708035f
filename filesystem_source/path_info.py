"""Resolves the configured path against the engine's working directory."""
from __future__ import annotations

import os
from pathlib import Path

from .errors import NotFoundError
from .models import Configuration, DirectoryPathInfo, FilePathInfo, ResolvedPath
from .utils.fs import call_binding, is_file


async def resolve_path(config: Configuration, cwd: str | Path) -> ResolvedPath:
    """Stat ``cwd / config.path`` once and describe it as a file or a directory.

    Raises :class:`NotFoundError` if nothing exists at that path; other
    filesystem errors propagate unchanged.
    """

    absolute_path = Path(os.path.abspath(os.path.join(cwd, config.path)))
    try:
        stats = await call_binding(config.fs.stat, str(absolute_path))
    except FileNotFoundError as exc:
        raise NotFoundError(str(absolute_path)) from exc

    if is_file(stats):
        return FilePathInfo(
            absolute_path=absolute_path,
            directory=absolute_path.parent,
            filename=absolute_path.name,
        )
    return DirectoryPathInfo(absolute_path=absolute_path)


__all__ = ["resolve_path"]
