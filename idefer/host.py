"""What the deferred scheduler needs from the interactive shell hosting it.

IDeferCmdlineApp implements this against prompt_toolkit; tests use a fake.
"""

import asyncio
import enum
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol


class HookKind(enum.Enum):
    CHPWD = "chpwd"
    PRECMD = "precmd"


class Host(Protocol):
    # held while any command runs, typed or deferred; never taken re-entrantly
    cmdlock: asyncio.Lock

    async def wait_idle(self) -> None:
        """Return once the prompt is waiting for user input."""

    def keys_queued(self) -> bool:
        """True if keystrokes are buffered but not yet processed."""

    def input_pending(self) -> bool:
        """True if other input (paste, unread terminal bytes) is waiting."""

    async def run_argv(self, argv: Sequence[str]) -> None:
        """Run one command whose words are already split and unquoted."""

    async def run_text(self, text: str) -> None:
        """Run a command line exactly as if it were typed at the prompt."""

    def cwd(self) -> str: ...

    def hooks(self, kind: HookKind) -> list[str]:
        """Ordered hook names registered for `kind`."""

    def resolve_hook(self, name: str) -> Callable[[], Awaitable[None]] | None:
        """Invocable for a hook name, or None if nothing by that name exists."""

    def has_rprompt(self) -> bool: ...

    def define_rprompt(self) -> None: ...

    def reset_suggestions(self) -> bool:
        """Drop the current autosuggestion; False if suggestions are off."""

    def clear_highlight_cache(self) -> bool:
        """Drop cached prompt highlighting; False if there is no cache."""

    def refresh_prompt(self) -> None: ...

    def flush_redisplay(self) -> None: ...
