#!/usr/bin/env python3

import asyncio
import os
import sys

import idefer.cli as cli

from dotenv import load_dotenv
from prompt_toolkit.patch_stdout import patch_stdout
from loguru import logger

# just load our dot files into the environment too
load_dotenv(".env.idefer")

# Use more efficient coroutine logic if available
# https://docs.python.org/3.12/library/asyncio-task.html#asyncio.eager_task_factory
EAGER_TASKS = sys.version_info >= (3, 12)

CONFIG_DEFAULT = dict(
    IDEFER_HISTORY="~/.idefer_history",
    IDEFER_RC="~/.ideferrc",
    IDEFER_LOGDIR="runlogs",
    IDEFER_PROMPT="idefer",
    IDEFER_REFRESH=1.0,
)

# populate config with defaults if they aren't in the environment
CONFIG = {**CONFIG_DEFAULT, **os.environ}

HISTORY: str = CONFIG["IDEFER_HISTORY"]  # type: ignore
RC: str = CONFIG["IDEFER_RC"]  # type: ignore
LOGDIR: str = CONFIG["IDEFER_LOGDIR"]  # type: ignore
PROMPT: str = CONFIG["IDEFER_PROMPT"]  # type: ignore

try:
    REFRESH = float(CONFIG["IDEFER_REFRESH"])  # type: ignore
except ValueError:
    logger.error("IDEFER_REFRESH must be a number of seconds, not: {}", CONFIG["IDEFER_REFRESH"])
    sys.exit(1)


async def initcli():
    if EAGER_TASKS:
        asyncio.get_running_loop().set_task_factory(asyncio.eager_task_factory)

    app = cli.IDeferCmdlineApp(
        name=PROMPT,
        historyFile=HISTORY,
        rcFile=RC,
        logdir=LOGDIR,
        toolbarUpdateInterval=REFRESH,
    )

    app.setupLogging()

    if sys.stdin.isatty():
        # patch entire application with prompt-toolkit-compatible stdout
        with patch_stdout(raw=True):
            try:
                await app.runall()
            except (SystemExit, EOFError):
                # known-good exit condition
                pass
            except Exception:
                logger.exception("Major uncaught exception?")
    else:
        logger.error("Attached input isn't a console, so we can't do anything!")

    app.stop()


def runit():
    """Entry point for idefer script and __main__ for entire package."""
    try:
        asyncio.run(initcli())
    except (KeyboardInterrupt, SystemExit):
        # known-good exit condition
        ...
    except Exception:
        logger.exception("bad bad so bad bad")


if __name__ == "__main__":
    runit()
