"""Command: defer-opts

Category: Deferred Commands
"""

from dataclasses import dataclass

from idefer.cmds.base import IOp, command
from idefer.executor import current_options


@command(names=["defer-opts"])
@dataclass
class IOpDeferOpts(IOp):
    """Print the options of the deferred command currently running.

    Exits 1 when not running inside a deferred command.
    """

    async def run(self):
        opts = current_options()
        if opts is None:
            print("not deferred")
            return 1

        print(opts.letters())
        return 0
