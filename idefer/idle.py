"""Idle waits: run a callback once a wait has elapsed AND the prompt is idle.

A wait never blocks the event loop. Zero-tick waits are ready immediately,
longer waits become ready from a loop timer. Either way the callback only
runs after the host reports it is sitting at the prompt, and after one more
trip through the loop so input callbacks that are already queued go first.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from idefer.options import TICKS_PER_SECOND

if TYPE_CHECKING:
    from idefer.host import Host


def _resolve(fut: asyncio.Future) -> None:
    if not fut.done():
        fut.set_result(None)


@dataclass(slots=True)
class WaitHandle:
    """One armed wait. Must be released once fired or abandoned."""

    ticks: int
    fut: asyncio.Future = field(repr=False)
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)
    dispatcher: asyncio.Task | None = field(default=None, repr=False)
    released: bool = False

    @property
    def ready(self) -> bool:
        return self.fut.done() and not self.fut.cancelled()

    def release(self) -> None:
        if self.released:
            return

        self.released = True

        if self.timer:
            self.timer.cancel()

        # the dispatcher releases its own handle from inside the callback
        if (
            self.dispatcher
            and not self.dispatcher.done()
            and self.dispatcher is not asyncio.current_task()
        ):
            self.dispatcher.cancel()

        if not self.fut.done():
            self.fut.cancel()


@dataclass(slots=True)
class IdleWaitRegistrar:
    host: "Host"

    def arm(self, ticks: int, callback: Callable[[WaitHandle], None]) -> WaitHandle:
        """Arm a wait of `ticks` and register `callback` for when it is ready.

        Must be called with a running event loop.
        """
        assert ticks >= 0, f"Negative wait? {ticks}"

        loop = asyncio.get_running_loop()
        handle = WaitHandle(ticks, loop.create_future())

        if ticks:
            handle.timer = loop.call_later(
                ticks / TICKS_PER_SECOND, _resolve, handle.fut
            )
        else:
            _resolve(handle.fut)

        handle.dispatcher = loop.create_task(
            self.dispatch(handle, callback), name=f"defer-wait-{ticks}"
        )

        logger.debug("[wait {}] Armed", ticks)
        return handle

    async def dispatch(
        self, handle: WaitHandle, callback: Callable[[WaitHandle], None]
    ) -> None:
        await handle.fut
        await self.host.wait_idle()
        await asyncio.sleep(0)

        if handle.released:
            return

        callback(handle)
