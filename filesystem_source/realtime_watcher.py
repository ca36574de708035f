"""Realtime filesystem watcher built on ``watchfiles``."""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable

from watchfiles import Change, awatch

from .file_entity import build_file_record
from .filters import GlobFilter, glob_matcher
from .logger import get_logger, log_event
from .models import ChangeKind, Configuration, FilePathInfo, FileRecord, ResolvedPath
from .utils.fs import as_bytes, call_binding, is_dir, stat_entry
from .watcher.channel import ChangeStream
from .watcher.types import (
    CHANGE_KINDS,
    BackendFactory,
    RawChanges,
    WatcherState,
    group_by_path,
    settle_deletion,
)

_STEP_MS = 50


class Watcher:
    """Turns OS change notifications under a resolved path into change records.

    ``IDLE`` until :meth:`start`, ``WATCHING`` until :meth:`dispose`, then
    ``DISPOSED`` for good. Errors raised while handling an event, or by the OS
    watch itself, are pushed onto the output stream and watching continues.
    """

    def __init__(
        self,
        config: Configuration,
        *,
        backend_factory: BackendFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.state = WatcherState.IDLE
        self.logger = get_logger("watcher", logger)
        self._backend_factory = backend_factory or awatch
        self._stream = ChangeStream()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._directory: Path | None = None
        self._filename: str | None = None
        self._glob: Callable[[str], bool] | None = None
        self._directories: set[str] = set()

        if isinstance(config.criteria, GlobFilter):
            self._glob = glob_matcher(config.criteria.patterns)

    def start(self, resolved: ResolvedPath) -> ChangeStream:
        """Begin watching and return the stream of change records."""

        if self.state is WatcherState.DISPOSED:
            raise RuntimeError("A disposed watcher cannot be restarted")
        if self.state is WatcherState.WATCHING:
            return self._stream

        self._directory = resolved.directory
        self._filename = resolved.filename if isinstance(resolved, FilePathInfo) else None
        self.state = WatcherState.WATCHING
        self._task = asyncio.create_task(self._run(resolved.directory), name=f"watch:{resolved.directory}")

        log_event(
            self.logger,
            level=logging.INFO,
            action="watch.start",
            message=f"Watching {resolved.absolute_path}",
            path=str(resolved.absolute_path),
            extra={"depth": self.config.depth, "glob": self._glob is not None},
        )
        return self._stream

    async def dispose(self) -> None:
        """Close the output stream and stop the OS watch. Safe to call repeatedly."""

        if self.state is WatcherState.DISPOSED:
            return
        previous, self.state = self.state, WatcherState.DISPOSED
        if previous is WatcherState.IDLE:
            return

        await asyncio.gather(self._stream.close(), self._stop_watching())
        log_event(
            self.logger,
            level=logging.INFO,
            action="watch.dispose",
            message=f"Stopped watching {self._directory}",
            path=str(self._directory),
        )

    async def _stop_watching(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task

    async def _run(self, directory: Path) -> None:
        if self._filename is None:
            try:
                await self._remember_directories(str(directory), prefix="")
            except OSError as exc:
                self._forward_error(exc)

        # Only dispose ends the watch; a failed subscription is reported and retried.
        while True:
            try:
                async for changes in self._backend_factory(
                    str(directory),
                    watch_filter=self._watch_filter,
                    debounce=self.config.debounce,
                    step=max(1, min(_STEP_MS, self.config.debounce)),
                    stop_event=self._stop_event,
                    recursive=self._filename is None and self.config.depth != 0,
                ):
                    await self._dispatch(changes)
            except Exception as exc:
                self._forward_error(exc)
            if await self._stopped_within(max(self.config.debounce, _STEP_MS) / 1000):
                return

    async def _stopped_within(self, seconds: float) -> bool:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _remember_directories(self, directory: str, *, prefix: str) -> None:
        """Record the directories already present, so their deletion is not taken for a file."""

        names = [str(name) for name in await call_binding(self.config.fs.list_directory, directory)]
        paths = [os.path.join(directory, name) for name in names]
        stats = await asyncio.gather(*(stat_entry(self.config.fs, path) for path in paths))

        for name, path, entry_stats in zip(names, paths, stats):
            relative = prefix + name
            if not is_dir(entry_stats):
                continue
            self._directories.add(relative)
            if self.config.depth is None or relative.count("/") + 1 <= self.config.depth:
                await self._remember_directories(path, prefix=relative + "/")

    def _watch_filter(self, change: Change, path: str) -> bool:
        relative = self._relative(path)
        if relative is None:
            return False
        if self._filename is not None:
            return relative == self._filename
        if self.config.depth is not None and relative.count("/") > self.config.depth:
            return False
        if self._glob is not None:
            return self._glob(relative)
        return True

    def _relative(self, path: str) -> str | None:
        if self._directory is None:
            return None
        try:
            relative = Path(path).relative_to(self._directory).as_posix()
        except ValueError:
            return None
        return None if relative == "." else relative

    async def _dispatch(self, changes: RawChanges) -> None:
        # Paths are independent; each path's own changes are handled in order.
        await asyncio.gather(
            *(self._handle_path(path, kinds) for path, kinds in group_by_path(changes).items())
        )

    async def _handle_path(self, path: str, changes: list[Change]) -> None:
        relative = self._relative(path)
        if relative is None:
            return
        vanishes = Change.deleted in changes
        if vanishes:
            # The batch is unordered; what is on disk now decides what the deletion means.
            try:
                exists = await self._exists(path)
            except OSError as exc:
                self._forward_error(exc)
                return
            changes = settle_deletion(changes, exists=exists)

        for change in changes:
            try:
                await self._handle_change(CHANGE_KINDS[change], relative, path, vanishes=vanishes)
            except Exception as exc:
                self._forward_error(exc)

    async def _exists(self, path: str) -> bool:
        try:
            await call_binding(self.config.fs.stat, path)
        except FileNotFoundError:
            return False
        return True

    async def _handle_change(
        self, kind: ChangeKind, relative: str, absolute_path: str, *, vanishes: bool
    ) -> None:
        log_event(
            self.logger,
            level=logging.DEBUG,
            action="watch.change",
            message=f"Change detected: {kind.value} {relative}",
            path=relative,
            extra={"change": kind.value, "dir": str(self._directory)},
        )

        if kind is ChangeKind.DELETED:
            if relative in self._directories:
                self._forget_directory(relative)
                return
            record = build_file_record(
                relative, absolute_path, None, kind, path_style=self.config.path_style
            )
            if self.config.filter(record):
                self._write(record)
            return

        try:
            stats = await call_binding(self.config.fs.stat, absolute_path)
            if is_dir(stats):
                self._directories.add(relative)
                return
            record = build_file_record(
                relative, absolute_path, stats, kind, path_style=self.config.path_style
            )
            if not self.config.filter(record):
                return
            record.contents = as_bytes(await call_binding(self.config.fs.read_file, absolute_path))
        except FileNotFoundError:
            # Gone again before we got to it; its deletion is in the same batch.
            if vanishes:
                return
            raise
        self._write(record)

    def _forget_directory(self, relative: str) -> None:
        nested = relative + "/"
        self._directories = {
            known for known in self._directories if known != relative and not known.startswith(nested)
        }

    def _write(self, record: FileRecord) -> None:
        if self.state is WatcherState.DISPOSED:
            return
        self._stream.write(record)

    def _forward_error(self, error: Exception) -> None:
        if self.state is WatcherState.DISPOSED:
            log_event(
                self.logger,
                level=logging.DEBUG,
                action="watch.error",
                message=f"Dropped error after dispose: {error!r}",
            )
            return
        log_event(
            self.logger,
            level=logging.WARNING,
            action="watch.error",
            message=str(error),
            extra={"error": repr(error), "dir": str(self._directory)},
        )
        self._stream.throw(error)


__all__ = ["Watcher"]
