"""Command: source, .

Category: Utilities
"""

from dataclasses import dataclass

from idefer.cmds.base import IOp, command


@command(names=["source", "."])
@dataclass
class IOpSource(IOp):
    """Run every command in a file, one command line per line.

    Blank lines and lines starting with `#` are skipped. This is what you
    usually hand to `defer` for slow startup work: `defer source ~/slow-init`
    """

    async def run(self):
        if len(self.args) != 1:
            return self.usage("file")

        return await self.state.sourceFile(self.args[0])
