"""Base classes and decorators for the command system.

This module provides:
- IOp: Base class for all command operations
- @command: Decorator to register commands with metadata
- Command registry for auto-discovery
"""

import importlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    import idefer.cli as typecheckingidefer

# Global command registry - commands register themselves at import time
_COMMAND_REGISTRY: list[type["IOp"]] = []


def command(names: list[str] | str, category: str | None = None):
    """Decorator to register a command with metadata.

    The category is inferred from the module's package (idefer.cmds.<category>),
    whose __init__.py must define a CATEGORY constant.

    Example:
        @command(names=["defer-list", "dlist"])
        @dataclass
        class IOpDeferList(IOp):
            ...
    """
    if isinstance(names, str):
        names = [names]

    def decorator(cls):
        if category is None:
            parts = cls.__module__.split(".")
            if len(parts) >= 3 and parts[0] == "idefer" and parts[1] == "cmds":
                category_package = ".".join(parts[:3])

                try:
                    category_module = importlib.import_module(category_package)
                except ImportError:
                    raise ValueError(
                        f"Cannot import category package {category_package} for {cls.__name__}"
                    )

                detected_category = getattr(category_module, "CATEGORY", None)
                if detected_category is None:
                    raise ValueError(
                        f"Category package {category_package} must define CATEGORY constant"
                    )

                cls.__command_category__ = detected_category
            else:
                raise ValueError(
                    f"Command {cls.__name__} must be in idefer.cmds.<category> package structure"
                )
        else:
            cls.__command_category__ = category

        cls.__command_names__ = names
        _COMMAND_REGISTRY.append(cls)
        return cls

    return decorator


@dataclass
class IOp:
    """Common base class for all command operations.

    All commands must:
    - Inherit from this class
    - Be decorated with @command() to register
    - Implement async run(), returning an exit status (None means 0)

    `args` holds the command's words after the command name, already
    unquoted; commands never re-split them.
    """

    # Note: this is a quoted annotation so python ignores but mypy can still use it
    state: "typecheckingidefer.IDeferCmdlineApp"
    args: list[str] = field(default_factory=list)

    def __post_init__(self):
        assert self.state
        self.scheduler = self.state.scheduler

    @property
    def name(self) -> str:
        return self.__command_names__[0]  # type: ignore[attr-defined]

    def usage(self, text: str) -> int:
        """Report bad arguments and return the failing exit status."""
        logger.error("usage: {} {}", self.name, text)
        return 1

    async def run(self) -> int | None:
        raise NotImplementedError
