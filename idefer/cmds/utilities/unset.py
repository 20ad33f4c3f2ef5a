"""Command: unset

Category: Utilities
"""

from dataclasses import dataclass

from idefer.cmds.base import IOp, command


@command(names=["unset"])
@dataclass
class IOpUnSetEnvironment(IOp):
    """Remove session variables (if set)."""

    async def run(self):
        if not self.args:
            # if no input, just print current state
            self.state.updateGlobalStateVariable("", None)
            return

        for key in self.args:
            self.state.updateGlobalStateVariable(key, "")
