"""Command: defer

Category: Deferred Commands
"""

from dataclasses import dataclass

from loguru import logger

from idefer.cmds.base import IOp, command
from idefer.errors import DeferUsageError
from idefer.options import USAGE


@command(names=["defer"])
@dataclass
class IOpDefer(IOp):
    """Queue a command to run once the prompt is idle. See `defer -h`."""

    async def run(self):
        try:
            task = self.scheduler.submit(self.args)
        except DeferUsageError as e:
            logger.error("{}", e.message)
            return 1

        if task is None:
            print(USAGE, end="")

        return 0
