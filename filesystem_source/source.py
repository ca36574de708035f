"""The filesystem source plugin exposed to the host engine."""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import aclosing
from typing import Any, AsyncIterator, Mapping

from .config import resolve_config
from .file_entity import create_file_url
from .file_scanner import FileScanner
from .models import FileRecord, FileSystemConfig, FilterPredicate, ResolvedPath, RunContext
from .path_info import resolve_path
from .realtime_watcher import Watcher
from .rehydrator import ChangeRehydrator
from .watcher.channel import ChangeStream
from .watcher.types import BackendFactory


class FileSystemSource:
    """Reads, watches and re-reads files under one configured path.

    The configuration is validated on construction. The path itself is
    resolved once, on the first :meth:`read`, :meth:`watch` or
    :meth:`initialize` call, and reused for the rest of the session.
    """

    name = "Filesystem Source"

    def __init__(
        self,
        config: FileSystemConfig | Mapping[str, Any] | None,
        *,
        backend_factory: BackendFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = resolve_config(config)
        self.logger = logger
        self.scanner = FileScanner(self.config, logger=logger)
        self._backend_factory = backend_factory
        self._path: ResolvedPath | None = None
        self._rehydrator: ChangeRehydrator | None = None
        self._watcher: Watcher | None = None
        self._init_lock = asyncio.Lock()

    @property
    def filter(self) -> FilterPredicate:
        return self.config.filter

    async def initialize(self, context: RunContext | None = None) -> ResolvedPath:
        context = context or RunContext()
        async with self._init_lock:
            if self._path is None:
                self._path = await resolve_path(self.config, context.cwd)
                self._rehydrator_for(str(self._path.absolute_path))
        return self._path

    async def read(self, context: RunContext | None = None) -> AsyncIterator[FileRecord]:
        context = context or RunContext()
        resolved = await self.initialize(context)
        async with aclosing(self.scanner.read(resolved, context)) as records:
            async for record in records:
                yield record

    async def watch(self, context: RunContext | None = None) -> ChangeStream:
        resolved = await self.initialize(context)
        if self._watcher is None:
            self._watcher = Watcher(
                self.config, backend_factory=self._backend_factory, logger=self.logger
            )
        return self._watcher.start(resolved)

    async def dispose(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            await watcher.dispose()

    async def process(self, record: FileRecord, context: RunContext | None = None) -> FileRecord:
        rehydrator = self._rehydrator
        if rehydrator is None:
            context = context or RunContext()
            rehydrator = self._rehydrator_for(os.path.abspath(os.path.join(context.cwd, self.config.path)))
        return await rehydrator.process(record)

    def _rehydrator_for(self, absolute_path: str) -> ChangeRehydrator:
        if self._rehydrator is None:
            root_url = create_file_url(absolute_path, self.config.path_style)
            self._rehydrator = ChangeRehydrator(self.config, root_url, logger=self.logger)
        return self._rehydrator


def filesystem(
    config: FileSystemConfig | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> FileSystemSource:
    """Create a :class:`FileSystemSource` for *config*."""

    return FileSystemSource(config, **kwargs)


__all__ = ["FileSystemSource", "filesystem"]
