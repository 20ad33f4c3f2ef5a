"""Option parsing for the `defer` command.

Grammar:
    defer [{+|-}12dmszpra] [-t delay] word...
    defer [{+|-}12dmszpra] [-t delay] -c list
    defer -h

Options are read getopt-style: letters may be clustered (`-12d`, `+sz`),
option arguments may be attached (`-t0.5`) or separate (`-t 0.5`), and the
scan stops at the first word not starting with `-`/`+` or right after `--`.
"""

import decimal
import enum
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from idefer.errors import DeferUsageError

# delays are tracked in integer ticks of 1/100 second
TICKS_PER_SECOND: Final = 100

# longest accepted -t delay: one year
MAX_DELAY_TICKS: Final = 365 * 24 * 3600 * TICKS_PER_SECOND

# non-negative real number, optionally with exponent; no leading or trailing dot
DELAY_PATTERN: Final = re.compile(r"\+?[0-9]+(\.[0-9]+)?([eE][-+]?[0-9]+)?")


class OptionSet(enum.Flag):
    """Actions taken around a deferred task (plus EVAL for `-c` payloads)."""

    STDOUT_SUPPRESS = enum.auto()
    STDERR_SUPPRESS = enum.auto()
    RUN_DIR_HOOKS = enum.auto()
    RUN_PROMPT_HOOKS = enum.auto()
    INVALIDATE_SUGGESTIONS = enum.auto()
    INVALIDATE_HIGHLIGHTING = enum.auto()
    REFRESH_PROMPT = enum.auto()
    FLUSH_INPUT = enum.auto()
    EVAL = enum.auto()

    @classmethod
    def actions(cls) -> "OptionSet":
        """Every action letter (everything except EVAL); also the default set."""
        return ~cls.EVAL

    def letters(self) -> str:
        """Render as option letters in canonical order, e.g. '12dmszpr'."""
        return "".join(
            letter for letter, member in LETTERS.items() if member in self
        ) + ("c" if OptionSet.EVAL in self else "")


LETTERS: Final[dict[str, OptionSet]] = {
    "1": OptionSet.STDOUT_SUPPRESS,
    "2": OptionSet.STDERR_SUPPRESS,
    "d": OptionSet.RUN_DIR_HOOKS,
    "m": OptionSet.RUN_PROMPT_HOOKS,
    "s": OptionSet.INVALIDATE_SUGGESTIONS,
    "z": OptionSet.INVALIDATE_HIGHLIGHTING,
    "p": OptionSet.REFRESH_PROMPT,
    "r": OptionSet.FLUSH_INPUT,
}

ALL_LETTERS: Final = "".join(LETTERS)

USAGE: Final = f"""defer [{{+|-}}{ALL_LETTERS}a] [-t delay] word...
defer [{{+|-}}{ALL_LETTERS}a] [-t delay] -c list

Queue a command for deferred execution. Whenever the prompt is idle, the next
command is popped from the queue and run. If a command was queued with
`-t delay`, execution of it and of every deferred command after it is delayed
by that many seconds (non-negative real number) without blocking the prompt.
The command then runs either as `word...` with every word taken literally, or,
with `-c`, as the command line `list`. Commands run in the order they were
queued.

Options enable (`-x`) or disable (`+x`) extra actions taken during and after
the command. By default every action is enabled. The same option can appear
more than once; the last occurrence wins.

  Option | Action
  ------ | -----------------------------------------------------
       1 | Discard standard output.
       2 | Discard standard error.
       d | Run `chpwd` hooks if the directory changed.
       m | Run `precmd` hooks.
       s | Invalidate the current autosuggestion.
       z | Invalidate cached prompt highlighting.
       p | Redraw the prompt.
       r | Flush pending redisplay.
       a | Shorthand for all options: `{ALL_LETTERS}`.

Example ~/.ideferrc:

  set RPROMPT loading
  defer source ~/.idefer/slow-init
  defer -t 0.5 -c 'set RPROMPT ready; echo init done'
"""


@dataclass(slots=True, frozen=True)
class DeferRequest:
    """Parsed `defer` arguments."""

    options: OptionSet
    delay_ticks: int
    payload: str | tuple[str, ...]

    # True when `-h` was given; nothing else is meaningful then
    help: bool = False


def merge(options: OptionSet, which: OptionSet, enable: bool) -> OptionSet:
    """Apply one `-x` (enable) or `+x` (disable) to an option set."""
    if enable:
        return options | which

    return options & ~which


def parse_delay(value: str) -> int:
    """Convert a `-t` argument in seconds to ticks, rounding up.

    Decimal math keeps inputs like 0.07 at exactly 7 ticks. Delays longer
    than MAX_DELAY_TICKS are rejected.
    """
    if not DELAY_PATTERN.fullmatch(value):
        raise DeferUsageError(f"defer: invalid -t argument: {value}")

    try:
        ticks = math.ceil(decimal.Decimal(value) * TICKS_PER_SECOND)
    except decimal.DecimalException:
        # exponent beyond what the decimal context can represent
        raise DeferUsageError(f"defer: invalid -t argument: {value}") from None

    if ticks > MAX_DELAY_TICKS:
        raise DeferUsageError(f"defer: invalid -t argument: {value}")

    return ticks


def parse_defer_args(args: Sequence[str]) -> DeferRequest:
    """Parse `defer` arguments or raise DeferUsageError."""
    options = OptionSet.actions()
    delay = 0
    expr: str | None = None

    idx = 0
    while idx < len(args):
        word = args[idx]
        if word == "--":
            idx += 1
            break

        if len(word) < 2 or word[0] not in "-+":
            break

        idx += 1
        sign = word[0]
        pos = 1
        while pos < len(word):
            letter = word[pos]
            pos += 1
            flag = sign + letter

            if letter in "ct":
                if sign == "+":
                    raise DeferUsageError(f"defer: invalid option: {flag}")

                # option argument is the rest of this word, else the next word
                if pos < len(word):
                    value = word[pos:]
                    pos = len(word)
                elif idx < len(args):
                    value = args[idx]
                    idx += 1
                else:
                    raise DeferUsageError(
                        f"defer: missing required argument: {flag}"
                    )

                if letter == "t":
                    delay = parse_delay(value)
                else:
                    if expr is not None:
                        raise DeferUsageError("defer: duplicate option: -c")

                    expr = value
            elif letter == "h":
                return DeferRequest(options, delay, (), help=True)
            elif letter == "a":
                options = merge(options, OptionSet.actions(), sign == "-")
            elif which := LETTERS.get(letter):
                options = merge(options, which, sign == "-")
            else:
                raise DeferUsageError(f"defer: invalid option: {flag}")

    rest = tuple(args[idx:])

    if expr is None:
        return DeferRequest(options, delay, rest)

    if rest:
        raise DeferUsageError(f"defer: unexpected positional argument: {rest[0]}")

    return DeferRequest(options | OptionSet.EVAL, delay, expr)
