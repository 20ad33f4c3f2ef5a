"""Command: exit, quit

Category: Utilities
"""

from dataclasses import dataclass

from loguru import logger

from idefer.cmds.base import IOp, command


@command(names=["exit", "quit"])
@dataclass
class IOpExit(IOp):
    async def run(self):
        logger.info("Exiting...")
        self.state.exiting = True
