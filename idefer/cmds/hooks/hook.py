"""Command: hook

Category: Hooks
"""

from dataclasses import dataclass

from loguru import logger

from idefer.cmds.base import IOp, command
from idefer.host import HookKind

USAGE = "add|rm <chpwd|precmd> <command> | list [chpwd|precmd]"


@command(names=["hook"])
@dataclass
class IOpHook(IOp):
    """Manage hook registries.

    chpwd hooks run after the working directory changes; precmd hooks run
    before each prompt. Hooks are command names run with no arguments, in
    registration order. Names that aren't commands (yet) are kept and skipped
    until something defines them.
    """

    async def run(self):
        match self.args:
            case ["add", kind, name]:
                if not (hk := self.kind(kind)):
                    return 1

                hooks = self.state.hooks(hk)
                if name not in hooks:
                    hooks.append(name)

                logger.info("[hook {}] Added: {}", hk.value, name)
            case ["rm", kind, name]:
                if not (hk := self.kind(kind)):
                    return 1

                hooks = self.state.hooks(hk)
                if name not in hooks:
                    logger.error("[hook {}] Not registered: {}", hk.value, name)
                    return 1

                hooks.remove(name)
                logger.info("[hook {}] Removed: {}", hk.value, name)
            case ["list", *which] if len(which) <= 1:
                kinds = [self.kind(k) for k in which] if which else list(HookKind)
                for hk in kinds:
                    if hk:
                        logger.info("[hook {}] {}", hk.value, self.state.hooks(hk))
            case _:
                return self.usage(USAGE)

    def kind(self, kind: str) -> HookKind | None:
        try:
            return HookKind(kind)
        except ValueError:
            logger.error("[hook] Unknown hook type: {}", kind)
            return None
