"""Command: cd

Category: Utilities
"""

import os
from dataclasses import dataclass

from loguru import logger

from idefer.cmds.base import IOp, command


@command(names=["cd"])
@dataclass
class IOpChangeDirectory(IOp):
    """Change the working directory (home directory if none given)."""

    async def run(self):
        if len(self.args) > 1:
            return self.usage("[dir]")

        target = os.path.expanduser(self.args[0] if self.args else "~")

        try:
            os.chdir(target)
        except OSError as e:
            logger.error("cd: {}: {}", target, e.strerror)
            return 1

        return 0
