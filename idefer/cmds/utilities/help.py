"""Command: help, ?

Category: Utilities
"""

from dataclasses import dataclass

from loguru import logger

from idefer.cmds.base import IOp, command


@command(names=["help", "?"])
@dataclass
class IOpHelp(IOp):
    """List commands by category, or show one command's documentation."""

    async def run(self):
        if self.args:
            op = self.state.dispatch.lookup(self.args[0])
            if op is None:
                logger.error("help: no such command: {}", self.args[0])
                return 1

            print((op.__doc__ or "(no documentation)").strip())
            return 0

        for category, cmds in sorted(self.state.dispatch.opmap.items()):
            print(f"{category}:")
            for name in sorted(cmds):
                print(f"    {name}")
