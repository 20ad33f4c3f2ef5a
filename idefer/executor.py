"""Run one deferred task and apply its side effects on the shell."""

import contextlib
import os
import sys
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from idefer.host import HookKind
from idefer.options import OptionSet

if TYPE_CHECKING:
    from idefer.host import Host
    from idefer.scheduler import Task

# options of the deferred task currently running (None outside of one)
DEFER_OPTIONS: ContextVar[OptionSet | None] = ContextVar("DEFER_OPTIONS", default=None)


def current_options() -> OptionSet | None:
    """Options of the deferred task running in this context, if any."""
    return DEFER_OPTIONS.get()


@contextlib.contextmanager
def suppressed_streams(options: OptionSet):
    """Discard stdout and/or stderr for the duration of the block.

    Whatever was redirected is restored exactly once on every exit path.
    """
    with contextlib.ExitStack() as stack:
        if OptionSet.STDOUT_SUPPRESS in options:
            devnull = stack.enter_context(open(os.devnull, "w"))
            stack.enter_context(contextlib.redirect_stdout(devnull))

        if OptionSet.STDERR_SUPPRESS in options:
            devnull = stack.enter_context(open(os.devnull, "w"))
            stack.enter_context(contextlib.redirect_stderr(devnull))

        yield


@dataclass(slots=True)
class TaskExecutor:
    host: "Host"

    async def apply(self, task: "Task") -> None:
        """Run `task`, then its hooks and prompt invalidation.

        Payload failures are logged here; they never reach whoever queued
        the task.
        """
        opts = task.options

        # typed lines wait here, so they never see redirected streams
        async with self.host.cmdlock:
            olddir = self.host.cwd()

            with suppressed_streams(opts):
                token = DEFER_OPTIONS.set(opts)
                try:
                    await self.runPayload(task)
                except Exception:
                    logger.exception("[defer {}] Deferred command failed", task)
                finally:
                    DEFER_OPTIONS.reset(token)
                    await self.runHooks(opts, olddir)

                if OptionSet.INVALIDATE_SUGGESTIONS in opts:
                    self.host.reset_suggestions()

                if OptionSet.INVALIDATE_HIGHLIGHTING in opts:
                    # no cache is the same as highlighting being off
                    self.host.clear_highlight_cache()

                if OptionSet.REFRESH_PROMPT in opts:
                    self.host.refresh_prompt()

                if OptionSet.FLUSH_INPUT in opts:
                    self.host.flush_redisplay()

    async def runPayload(self, task: "Task") -> None:
        if OptionSet.EVAL in task.options:
            if not isinstance(task.payload, str):
                raise TypeError(f"-c payload must be a command line, got: {task.payload!r}")

            await self.host.run_text(task.payload)
        elif task.payload:
            await self.host.run_argv(task.payload)

    async def runHooks(self, opts: OptionSet, olddir: str) -> None:
        names: list[str] = []

        if OptionSet.RUN_DIR_HOOKS in opts and self.host.cwd() != olddir:
            names.extend(self.host.hooks(HookKind.CHPWD))

        if OptionSet.RUN_PROMPT_HOOKS in opts:
            names.extend(self.host.hooks(HookKind.PRECMD))

        for name in names:
            hook = self.host.resolve_hook(name)
            if hook is None:
                continue

            try:
                await hook()
            except Exception:
                logger.exception("[hook {}] Hook failed", name)
