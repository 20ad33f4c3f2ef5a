"""Command dispatcher for routing commands to their handlers."""

from collections.abc import Coroutine, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idefer.errors import UnknownCommandError

if TYPE_CHECKING:
    from .base import IOp


@dataclass
class Dispatch:
    """Dispatcher that routes command names to their registered handlers.

    Uses the auto-discovered OP_MAP to find and execute commands.
    """

    ops: dict[str, type["IOp"]] = field(init=False)

    def __post_init__(self):
        # Import OP_MAP here to avoid circular imports
        from . import OP_MAP

        self.opmap = OP_MAP
        self.ops = {
            name: cls for cmds in OP_MAP.values() for name, cls in cmds.items()
        }

    def lookup(self, cmd: str) -> type["IOp"] | None:
        return self.ops.get(cmd)

    def runop(self, cmd: str, args: Sequence[str], state) -> Coroutine:
        """Execute a command by name.

        Returns:
            Coroutine that executes the command and resolves to its exit status
        """
        op = self.lookup(cmd)
        if op is None:
            raise UnknownCommandError(cmd)

        return op(state=state, args=list(args)).run()
