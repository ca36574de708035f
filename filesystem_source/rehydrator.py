"""Reads the contents of change records created by other plugins."""
from __future__ import annotations

import logging

from .file_entity import file_url_to_path
from .logger import get_logger, log_event
from .models import ChangeKind, Configuration, FileRecord
from .utils.fs import as_bytes, call_binding


class ChangeRehydrator:
    """Fills in ``contents`` for empty records that live under this source's root.

    Another plugin can report one of our files as changed without reading it.
    For example, a layout plugin can mark every page that uses a template whose
    source changed. The record then comes through here and gets its current
    contents from disk. Records outside the root, deleted records and records
    that already have contents pass through untouched.
    """

    def __init__(
        self,
        config: Configuration,
        root_url: str,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.root_url = root_url
        self.logger = get_logger("rehydrator", logger)

    def should_read(self, record: FileRecord) -> bool:
        return (
            not record.contents
            and record.change is not ChangeKind.DELETED
            and record.source.startswith(self.root_url)
        )

    async def process(self, record: FileRecord) -> FileRecord:
        if not self.should_read(record):
            return record

        path = file_url_to_path(record.source, self.config.path_style)
        record.contents = as_bytes(await call_binding(self.config.fs.read_file, path))
        log_event(
            self.logger,
            level=logging.DEBUG,
            action="process.rehydrate",
            message=f"Re-read {record.path}",
            path=path,
            bytes_processed=record.size,
        )
        return record


__all__ = ["ChangeRehydrator"]
