"""The deferred task queue and the engine that drains it while the prompt is idle.

Lifecycle of the engine:

    IDLE      nothing queued, no wait armed
    WAITING   exactly one wait armed with the registrar
    DRAINING  the wait fired; tasks are being popped and executed

`submit()` arms a zero-tick wait only when the queue goes from empty to
non-empty. The drain loop checks for pending input before every task and
hands control back to the prompt (re-arming a zero-tick wait) as soon as the
user types. A task with a delay stays at the head of the queue, has its delay
rewritten to zero, and the engine waits that long before continuing, so the
delay counts from when the task reached the head, not from submission.
"""

import asyncio
import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from idefer.executor import TaskExecutor
from idefer.idle import IdleWaitRegistrar, WaitHandle
from idefer.options import TICKS_PER_SECOND, OptionSet, parse_defer_args

if TYPE_CHECKING:
    from idefer.host import Host


class ResumeState(enum.Enum):
    IDLE = "idle"
    WAITING = "waiting"
    DRAINING = "draining"


@dataclass(slots=True)
class Task:
    """One queued command.

    Only the scheduler touches `delay_ticks` after creation (zeroing it once
    the head task's wait is armed).
    """

    delay_ticks: int
    options: OptionSet
    payload: str | tuple[str, ...]

    def __str__(self) -> str:
        if OptionSet.EVAL in self.options:
            what = repr(self.payload)
        else:
            what = " ".join(self.payload)

        return f"{self.delay_ticks / TICKS_PER_SECOND:g}s {self.options.letters() or '-'} {what}"


class DeferScheduler:
    """FIFO queue of deferred tasks plus the idle-driven resume engine."""

    def __init__(
        self,
        host: "Host",
        registrar: IdleWaitRegistrar | None = None,
        executor: TaskExecutor | None = None,
    ) -> None:
        self.host = host
        self.registrar = registrar or IdleWaitRegistrar(host)
        self.executor = executor or TaskExecutor(host)

        self.queue: list[Task] = []
        self.state = ResumeState.IDLE

        # the single outstanding wait (only non-None while WAITING)
        self.session: WaitHandle | None = None
        self.drainer: asyncio.Task | None = None

        # running count of executed tasks, for reporting
        self.completed = 0

    def __len__(self) -> int:
        return len(self.queue)

    @property
    def pending(self) -> list[Task]:
        return list(self.queue)

    def submit(self, args: Sequence[str]) -> Task | None:
        """Queue a task from raw `defer` arguments.

        Returns the queued task, or None if only help was requested.
        Raises DeferUsageError without touching the queue on bad input.
        """
        req = parse_defer_args(args)
        if req.help:
            return None

        task = Task(req.delay_ticks, req.options, req.payload)

        logger.debug("[defer] Queuing ({} pending): {}", len(self.queue) + 1, task)

        if OptionSet.REFRESH_PROMPT in task.options and not self.host.has_rprompt():
            self.host.define_rprompt()

        # arm before appending: one wait per empty -> non-empty transition
        if not self.queue and self.state is ResumeState.IDLE:
            self.arm(0)

        self.queue.append(task)

        return task

    def arm(self, ticks: int) -> None:
        assert self.session is None, f"Wait already armed: {self.session}"

        self.session = self.registrar.arm(ticks, self.resume)
        self.state = ResumeState.WAITING

    def resume(self, handle: WaitHandle) -> None:
        """Registrar callback: the armed wait elapsed and the prompt is idle."""
        if handle is not self.session:
            # stale wait from before close(); nothing to do
            handle.release()
            return

        handle.release()
        self.session = None
        self.state = ResumeState.DRAINING
        self.drainer = asyncio.get_running_loop().create_task(
            self.drain(), name="defer-drain"
        )

    async def drain(self) -> None:
        """Run queued tasks until the queue empties, input arrives, or a delay."""
        while self.queue and not (
            self.host.keys_queued() or self.host.input_pending()
        ):
            head = self.queue[0]

            if head.delay_ticks:
                ticks = head.delay_ticks
                head.delay_ticks = 0
                self.arm(ticks)
                logger.debug("[defer] Waiting {} ticks before: {}", ticks, head)
                return

            try:
                await self.executor.apply(head)
            except Exception:
                logger.exception("[defer {}] Executor failed", head)
            finally:
                # close() may have emptied the queue while the task ran
                if self.queue and self.queue[0] is head:
                    self.queue.pop(0)
                    self.completed += 1

        if self.queue:
            # input arrived; let the prompt process it, then come back
            self.arm(0)
            return

        self.state = ResumeState.IDLE
        logger.debug("[defer] Queue drained ({} run total)", self.completed)

    def close(self) -> None:
        """Release any armed wait and stop draining. Queued tasks are dropped."""
        if self.session:
            self.session.release()
            self.session = None

        if self.drainer and not self.drainer.done():
            self.drainer.cancel()

        if self.queue:
            logger.warning("[defer] Dropping {} queued task(s)", len(self.queue))
            self.queue.clear()

        self.state = ResumeState.IDLE
