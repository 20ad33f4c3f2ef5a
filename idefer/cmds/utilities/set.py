"""Command: set

Category: Utilities
"""

from dataclasses import dataclass

from idefer.cmds.base import IOp, command


@command(names=["set"])
@dataclass
class IOpSetEnvironment(IOp):
    """Read or Write a session variable.

    With no arguments, print every variable.
    To set a value, run `set [key] [value...]` (words are joined by spaces).
    To delete a key, use an empty value as `set [key] ""`.

    Variables with meaning to the shell:
      RPROMPT   text shown on the right side of the prompt
      bigerror  print full tracebacks for failing commands
    """

    async def run(self):
        if not self.args:
            # if no input, just print current state
            self.state.updateGlobalStateVariable("", None)
            return

        key, *val = self.args
        self.state.updateGlobalStateVariable(key, " ".join(val))
