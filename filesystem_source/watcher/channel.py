"""Single-writer output channel between watch callbacks and the consumer."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Union

from ..models import FileRecord


@dataclass(slots=True)
class _Failure:
    error: BaseException


class _End:
    pass


_END = _End()

_Item = Union[FileRecord, _Failure, _End]


class ChangeStream(AsyncIterator[FileRecord]):
    """Async iterator of change records that can also carry errors.

    An error written with :meth:`throw` is raised from ``__anext__`` when the
    consumer reaches it. The stream stays usable afterwards, so the consumer
    may keep iterating. Once :meth:`close` is called, records already queued
    are still delivered before iteration stops.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[_Item] = asyncio.Queue()
        self._closed = False
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, record: FileRecord) -> None:
        self._put(record)

    def throw(self, error: BaseException) -> None:
        self._put(_Failure(error))

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def _put(self, item: _Item) -> None:
        if self._closed:
            raise RuntimeError("Cannot write to a closed change stream")
        self._queue.put_nowait(item)

    def __aiter__(self) -> "ChangeStream":
        return self

    async def __anext__(self) -> FileRecord:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if isinstance(item, _End):
            self._finished = True
            # Wake any other consumer still waiting on the queue.
            self._queue.put_nowait(item)
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            raise item.error
        return item


__all__ = ["ChangeStream"]
