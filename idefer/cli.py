#!/usr/bin/env python3

original_print = print
import asyncio
import datetime
import os
import pathlib
import re
import select
import sys
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Final

from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.document import Document
from prompt_toolkit.history import FileHistory, ThreadedHistory
from prompt_toolkit.lexers import Lexer
from prompt_toolkit.shortcuts import set_title
from prompt_toolkit.styles import Style

from idefer.cmds import Dispatch
from idefer.errors import UnknownCommandError
from idefer.helpers import split_commands, split_words
from idefer.host import HookKind
from idefer.scheduler import DeferScheduler

# exit status for commands we couldn't find (same as POSIX shells)
STATUS_NOT_FOUND: Final = 127

COMMAND_WORD: Final = re.compile(r"^(\s*)(\S*)(.*)$")


class CommandLexer(Lexer):
    """Highlight the command word green if it exists, red if it doesn't."""

    def __init__(self, known: Callable[[str], bool]) -> None:
        self.known = known

    def lex_document(self, document: Document):
        def get_line(lineno: int):
            lead, word, rest = COMMAND_WORD.match(document.lines[lineno]).groups()  # type: ignore
            style = "class:command" if self.known(word) else "class:unknown"
            return [("", lead), (style if word else "", word), ("", rest)]

        return get_line


@dataclass
class IDeferCmdlineApp:
    """Interactive command shell which runs `defer`red commands while idle."""

    name: str = "idefer"
    historyFile: str = "~/.idefer_history"
    rcFile: str | None = "~/.ideferrc"
    logdir: str = "runlogs"
    toolbarUpdateInterval: float = 1.0

    dispatch: Dispatch = field(default_factory=Dispatch)

    # the deferred command queue and its idle-driven runner
    scheduler: DeferScheduler = field(init=False)

    # global state variables (set per-session with no persistence)
    localvars: dict[str, str] = field(default_factory=dict)

    # hook registries: command names run at directory change / before each prompt
    hookRegistry: dict[HookKind, list[str]] = field(
        default_factory=lambda: {kind: [] for kind in HookKind}
    )

    # exit status of the most recent command
    status: int = 0
    exiting: bool = False

    # set only while the prompt is waiting for input
    idle: asyncio.Event = field(default_factory=asyncio.Event)

    # held by whichever command runs: a typed line or one deferred task
    cmdlock: asyncio.Lock = field(default_factory=asyncio.Lock)

    session: PromptSession | None = None

    style: Style = field(
        default_factory=lambda: Style.from_dict(
            {
                "bottom-toolbar": "fg:default bg:default",
                "command": "fg:ansigreen",
                "unknown": "fg:ansired",
            }
        )
    )

    def __post_init__(self) -> None:
        self.scheduler = DeferScheduler(self)

    def setupLogging(self) -> None:
        now = datetime.datetime.now()
        LOGDIR = pathlib.Path(self.logdir) / f"{now.year}" / f"{now.month:02}"
        LOGDIR.mkdir(exist_ok=True, parents=True)
        LOG_FILE_TEMPLATE = str(
            LOGDIR / f"{self.name}-pid={os.getpid()}-{now.isoformat()}".replace(" ", "_")
        )

        logger.info("Logging session with prefix: {}", LOG_FILE_TEMPLATE)

        def asink(x):
            # don't use print_formatted_text() because it doesn't respect the
            # patch_stdout() context manager we've wrapped this entire runtime
            # around. Resolving sys.stdout at call time also means deferred
            # commands run with stdout discarded get their logs discarded too.
            original_print(x, end="")

        def esink(x):
            original_print(x, end="", file=sys.stderr)

        logger.remove()
        logger.add(asink, colorize=True, filter=lambda r: r["level"].no < 40)
        logger.add(esink, colorize=True, level="ERROR")

        # user input is logged to TRACE: it lands in the log files but not on
        # the console (since the user already typed it in the console)
        logger.add(sink=LOG_FILE_TEMPLATE + "-idefer.log", level="TRACE", colorize=False)
        logger.add(
            sink=LOG_FILE_TEMPLATE + "-idefer-color.log",
            level="TRACE",
            colorize=True,
        )

    def updateGlobalStateVariable(self, key: str, val: str | None) -> None:
        # 'val' of None means just print the output, while 'val' of empty string means delete the key.
        if val is None:
            logger.info("No value provided, so printing current settings:")
            for k, v in sorted(self.localvars.items()):
                logger.info("SET: {} = {}", k, v)

            return

        original = self.localvars.get(key)

        if val:
            self.localvars[key] = val
        else:
            self.localvars.pop(key, None)

        if original and not val:
            logger.info("UNSET: {} (previously: {})", key, original)
        elif original:
            logger.info("SET: {} = {} (previously: {})", key, val, original)
        elif val:
            logger.info("SET: {} = {}", key, val)

    # ------------------------------------------------------------------
    # Host interface used by the deferred scheduler
    # ------------------------------------------------------------------

    async def wait_idle(self) -> None:
        await self.idle.wait()

    def keys_queued(self) -> bool:
        app = self.session.app if self.session else None
        if not (app and app.is_running):
            return False

        return bool(app.key_processor.input_queue)

    def input_pending(self) -> bool:
        # a line was accepted and its command is still running
        if not self.idle.is_set():
            return True

        app = self.session.app if self.session else None
        if not (app and app.is_running):
            return False

        try:
            fd = app.input.fileno()
        except NotImplementedError:
            # pipe/dummy inputs have nothing for us to peek at
            return False

        readable, _, _ = select.select([fd], [], [], 0)
        return bool(readable)

    async def run_argv(self, argv: Sequence[str]) -> None:
        await self.runSingleCommand(argv[0], list(argv[1:]))

    async def run_text(self, text: str) -> None:
        await self.buildAndRun(text)

    def cwd(self) -> str:
        return os.getcwd()

    def hooks(self, kind: HookKind) -> list[str]:
        return self.hookRegistry[kind]

    def resolve_hook(self, name: str) -> Callable[[], Awaitable[None]] | None:
        if self.dispatch.lookup(name) is None:
            return None

        async def hook() -> None:
            await self.dispatch.runop(name, [], self)

        return hook

    def has_rprompt(self) -> bool:
        return "RPROMPT" in self.localvars

    def define_rprompt(self) -> None:
        self.localvars["RPROMPT"] = ""

    def reset_suggestions(self) -> bool:
        if not (self.session and self.session.auto_suggest):
            return False

        self.session.default_buffer.suggestion = None
        return True

    def clear_highlight_cache(self) -> bool:
        app = self.session.app if self.session else None
        if not (app and app.is_running):
            return False

        # BufferControl keeps lexed fragments keyed on the buffer text
        cache = getattr(app.layout.current_control, "_fragment_cache", None)
        if cache is None:
            return False

        cache.clear()
        return True

    def refresh_prompt(self) -> None:
        if self.session and self.session.app.is_running:
            self.session.app.invalidate()

    def flush_redisplay(self) -> None:
        if self.session and self.session.app.is_running:
            self.session.app.output.flush()

    # ------------------------------------------------------------------
    # Command running
    # ------------------------------------------------------------------

    async def runHooks(self, kind: HookKind) -> None:
        for name in self.hookRegistry[kind]:
            hook = self.resolve_hook(name)
            if hook is None:
                continue

            try:
                await hook()
            except Exception:
                logger.exception("[hook {}] Hook failed", name)

    async def runSingleCommand(self, cmd: str, rest: list[str]) -> None:
        try:
            result = await self.dispatch.runop(cmd, rest, self)
            self.status = result if isinstance(result, int) else 0
        except UnknownCommandError as e:
            logger.error("{}", e)
            self.status = STATUS_NOT_FOUND
        except Exception as e:
            self.status = 1
            if self.localvars.get("bigerror"):
                err = logger.exception
            else:
                logger.warning(
                    "Using small exception printer. 'set bigerror yes' to enable full stack trace messages."
                )
                err = logger.error

            err("[{}] Error with command: {}", [cmd] + rest, e)

    async def buildAndRun(self, text1: str) -> None:
        """Run a command line: commands split on `;` or newlines, words split shell-style."""
        for ccmd in split_commands(text1):
            # if the split generated empty entries (like running ;;;;), just skip the command
            if not ccmd:
                continue

            try:
                cmd, *rest = split_words(ccmd)
            except ValueError as e:
                logger.error("[{}] Error parsing your input: {}", ccmd, e)
                self.status = 1
                continue

            await self.runSingleCommand(cmd, rest)

            if self.exiting:
                break

    async def sourceFile(self, path: str) -> int:
        target = pathlib.Path(path).expanduser()
        try:
            lines = target.read_text().splitlines()
        except OSError as e:
            logger.error("source: {}: {}", target, e.strerror)
            return 1

        for line in lines:
            line = line.strip()
            if line and not line.startswith("#"):
                await self.buildAndRun(line)

        return self.status

    # ------------------------------------------------------------------
    # REPL
    # ------------------------------------------------------------------

    def promptMessage(self) -> str:
        here = pathlib.Path.cwd()
        home = pathlib.Path.home()
        where = "~" if here == home else here.name or str(here)
        return f"{where} {self.name}> "

    def rprompt(self) -> str:
        return self.localvars.get("RPROMPT", "")

    def bottomToolbar(self) -> str:
        pending = len(self.scheduler)
        if not pending:
            return f"deferred: idle ({self.scheduler.completed} run)"

        return f"deferred: {pending} queued ({self.scheduler.state.value})"

    async def prepare(self) -> None:
        set_title(self.name)

        if self.rcFile and pathlib.Path(self.rcFile).expanduser().exists():
            logger.info("Loading startup commands from: {}", self.rcFile)
            await self.sourceFile(self.rcFile)

    async def runall(self) -> None:
        await self.prepare()

        while not self.exiting:
            try:
                await self.dorepl()
            except Exception:
                logger.exception("REPL failed, restarting prompt...")

    async def dorepl(self) -> None:
        self.session = PromptSession(
            history=ThreadedHistory(FileHistory(os.path.expanduser(self.historyFile))),
            auto_suggest=AutoSuggestFromHistory(),
            lexer=CommandLexer(lambda word: self.dispatch.lookup(word) is not None),
        )

        app = self.session.app
        loop = asyncio.get_event_loop()

        def updateToolbar():
            if app.is_running:
                app.invalidate()

            if not self.exiting:
                loop.call_later(self.toolbarUpdateInterval, updateToolbar)

        loop.call_soon(updateToolbar)

        # The Command Processing REPL
        while not self.exiting:
            await self.runHooks(HookKind.PRECMD)

            try:
                # read input from Prompt Toolkit (deferred commands run while we wait here)
                text1 = await self.session.prompt_async(
                    self.promptMessage,
                    rprompt=self.rprompt,
                    bottom_toolbar=self.bottomToolbar,
                    style=self.style,
                    pre_run=self.idle.set,
                    enable_history_search=True,
                    search_ignore_case=True,
                )
            except KeyboardInterrupt:
                # Control-C pressed. Try again.
                continue
            except EOFError:
                # Control-D pressed
                logger.info("Exiting...")
                self.exiting = True
                break
            finally:
                self.idle.clear()

            # log user input to our active logfile(s)
            logger.trace("{}> {}", self.name, text1)

            await self.runTyped(text1)

    async def runTyped(self, text1: str) -> None:
        """Run a line typed at the prompt once no deferred command is running."""
        async with self.cmdlock:
            olddir = self.cwd()
            await self.buildAndRun(text1)

            if self.cwd() != olddir:
                await self.runHooks(HookKind.CHPWD)

    def stop(self) -> None:
        self.exiting = True
        self.scheduler.close()
