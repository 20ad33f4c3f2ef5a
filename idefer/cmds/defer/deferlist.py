"""Command: defer-list, dlist

Category: Deferred Commands
"""

from dataclasses import dataclass

from loguru import logger

from idefer.cmds.base import IOp, command


@command(names=["defer-list", "dlist"])
@dataclass
class IOpDeferList(IOp):
    """List queued deferred commands in the order they will run."""

    async def run(self):
        logger.info(
            "Deferred queue: {} pending, {} run, engine {}",
            len(self.scheduler),
            self.scheduler.completed,
            self.scheduler.state.value,
        )

        for idx, task in enumerate(self.scheduler.pending):
            logger.info("[{}] {}", idx, task)
