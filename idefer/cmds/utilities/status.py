"""Command: status

Category: Utilities
"""

from dataclasses import dataclass

from idefer.cmds.base import IOp, command


@command(names=["status"])
@dataclass
class IOpStatus(IOp):
    """Print the exit status of the previous command."""

    async def run(self):
        status = self.state.status
        print(status)

        # don't clobber what we're reporting
        return status
