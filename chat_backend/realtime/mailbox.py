from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]
Job = tuple[str, Handler, tuple[Any, ...]]


class ConnectionMailbox:
    """Runs one connection's handlers one at a time, in arrival order.

    python-socketio starts a task per inbound event, so two events from the
    same socket could otherwise interleave at their first `await`. Each
    connection gets a queue drained by a single worker task instead; separate
    connections still run concurrently.

    A failing handler is logged and the worker moves on to the next event.
    """

    def __init__(self, sid: str) -> None:
        self.sid = sid
        self._queue: asyncio.Queue[Job] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(
                self._run(),
                name=f"socket-mailbox-{self.sid}",
            )

    def submit(self, label: str, handler: Handler, *args: Any) -> bool:
        if self._closed:
            logger.debug("Mailbox %s closed; dropping %s", self.sid, label)
            return False
        self._queue.put_nowait((label, handler, args))
        return True

    async def _run(self) -> None:
        while True:
            label, handler, args = await self._queue.get()
            try:
                await handler(*args)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Socket %s: handler for %s failed", self.sid, label)
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued handler has finished."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop the worker; anything still queued is discarded."""
        self._closed = True
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
