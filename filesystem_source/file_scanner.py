"""Directory crawling and concurrent file reading."""
from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import aclosing
from typing import AsyncIterator

from .file_entity import build_file_record
from .logger import get_logger, log_event
from .models import Configuration, FilePathInfo, FileRecord, ResolvedPath, RunContext
from .utils.fs import as_bytes, call_binding, is_dir, is_file, stat_entry


class FileScanner:
    """Reads the files under a resolved path that pass the configured filter."""

    def __init__(self, config: Configuration, logger: logging.Logger | None = None) -> None:
        self.config = config
        self.logger = get_logger("scanner", logger)

    async def read(self, resolved: ResolvedPath, context: RunContext) -> AsyncIterator[FileRecord]:
        """Yield matching records, contents included, in completion order.

        At most ``context.concurrency`` reads are in flight at once. The first
        stat, listing, read or filter error ends the iteration.
        """

        if context.concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        log_event(
            self.logger,
            level=logging.INFO,
            action="read.start",
            message=f"Reading {resolved.absolute_path}",
            path=str(resolved.absolute_path),
            extra={"depth": self.config.depth, "concurrency": context.concurrency},
        )

        if isinstance(resolved, FilePathInfo):
            records = self._read_file(resolved)
        else:
            records = self._read_directory(str(resolved.directory), context.concurrency)

        started = time.monotonic()
        count = 0
        total_bytes = 0
        async with aclosing(records):
            async for record in records:
                count += 1
                total_bytes += record.size
                yield record

        log_event(
            self.logger,
            level=logging.INFO,
            action="read.complete",
            message=f"Read {count} file(s) from {resolved.absolute_path}",
            path=str(resolved.absolute_path),
            count=count,
            bytes_processed=total_bytes,
            duration_ms=(time.monotonic() - started) * 1000,
        )

    async def _read_file(self, resolved: FilePathInfo) -> AsyncIterator[FileRecord]:
        absolute_path = str(resolved.absolute_path)
        stats = await call_binding(self.config.fs.stat, absolute_path)
        record = build_file_record(
            resolved.filename, absolute_path, stats, path_style=self.config.path_style
        )
        if self.config.filter(record):
            yield await self._read_contents(record, absolute_path)

    async def _read_directory(self, directory: str, concurrency: int) -> AsyncIterator[FileRecord]:
        found = self._scan_path(directory, prefix="", current_depth=0)
        pending: set[asyncio.Task[FileRecord]] = set()
        exhausted = False

        try:
            while True:
                while not exhausted and len(pending) < concurrency:
                    try:
                        record, absolute_path = await anext(found)
                    except StopAsyncIteration:
                        exhausted = True
                    else:
                        pending.add(asyncio.create_task(self._read_contents(record, absolute_path)))

                if not pending:
                    return

                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    yield task.result()
        finally:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            await found.aclose()

    async def _scan_path(
        self, directory: str, *, prefix: str, current_depth: int
    ) -> AsyncIterator[tuple[FileRecord, str]]:
        # Filtering happens here so that rejected files are never read.
        names = await call_binding(self.config.fs.list_directory, directory)
        entries = [(str(name), os.path.join(directory, str(name))) for name in names]
        stats = await asyncio.gather(*(stat_entry(self.config.fs, path) for _, path in entries))

        for (name, absolute_path), entry_stats in zip(entries, stats):
            relative_path = prefix + name
            if is_dir(entry_stats):
                if self._should_descend(current_depth + 1):
                    async with aclosing(
                        self._scan_path(
                            absolute_path, prefix=relative_path + "/", current_depth=current_depth + 1
                        )
                    ) as nested:
                        async for found in nested:
                            yield found
            elif is_file(entry_stats):
                record = build_file_record(
                    relative_path, absolute_path, entry_stats, path_style=self.config.path_style
                )
                if self.config.filter(record):
                    yield record, absolute_path

    def _should_descend(self, depth: int) -> bool:
        if self.config.depth is None:
            return True
        return depth <= self.config.depth

    async def _read_contents(self, record: FileRecord, absolute_path: str) -> FileRecord:
        record.contents = as_bytes(await call_binding(self.config.fs.read_file, absolute_path))
        return record


def read(
    resolved: ResolvedPath,
    config: Configuration,
    context: RunContext,
    *,
    logger: logging.Logger | None = None,
) -> AsyncIterator[FileRecord]:
    """Read every file under *resolved* that passes ``config.filter``."""

    return FileScanner(config, logger=logger).read(resolved, context)


__all__ = ["FileScanner", "read"]
