"""Command: sleep

Category: Utilities
"""

import asyncio
from dataclasses import dataclass

from idefer.cmds.base import IOp, command


@command(names=["sleep"])
@dataclass
class IOpSleep(IOp):
    """Wait for the given number of seconds without blocking the event loop."""

    async def run(self):
        try:
            (seconds,) = map(float, self.args)
        except ValueError:
            return self.usage("seconds")

        await asyncio.sleep(seconds)
