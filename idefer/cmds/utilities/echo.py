"""Command: echo

Category: Utilities
"""

from dataclasses import dataclass

from idefer.cmds.base import IOp, command


@command(names=["echo"])
@dataclass
class IOpEcho(IOp):
    async def run(self):
        print(" ".join(self.args))
