from __future__ import annotations

import asyncio
from typing import Awaitable

from PySide6.QtCore import QObject, Signal

from .logging import get_logger


logger = get_logger(__name__)


class AsyncBridge(QObject):
    """Schedule coroutines on the qasync loop and report completion via Qt signals."""

    task_completed = Signal(object, object)

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        super().__init__()
        self._loop = loop
        self._tasks: set[asyncio.Future[None]] = set()

    def run_coroutine(self, coro: Awaitable[object]) -> None:
        loop = self._loop or asyncio.get_event_loop()
        future = asyncio.ensure_future(self._wrap(coro), loop=loop)
        self._tasks.add(future)
        future.add_done_callback(self._tasks.discard)

    async def _wrap(self, coro: Awaitable[object]) -> None:
        error = None
        result = None
        try:
            result = await coro
        except Exception as exc:  # noqa: BLE001 - reported through the signal
            logger.exception("Background UI task failed")
            error = exc
        self.task_completed.emit(result, error)


__all__ = ["AsyncBridge"]
