# tests/test_scheduler.py

from __future__ import annotations

import asyncio
import sys

import pytest

from idefer.errors import DeferUsageError
from idefer.scheduler import ResumeState

from .fakes import settle


@pytest.mark.asyncio
async def test_zero_delay_tasks_run_in_submission_order(scheduler, host, registrar) -> None:
    for name in "ABC":
        scheduler.submit([name])

    await settle(scheduler)

    assert host.ran == [("A",), ("B",), ("C",)]
    assert scheduler.completed == 3
    # one wait for the whole burst: armed on the empty -> non-empty transition only
    assert registrar.armed == [0]


@pytest.mark.asyncio
async def test_submit_arms_single_session(scheduler, registrar) -> None:
    assert scheduler.state is ResumeState.IDLE

    scheduler.submit(["a"])
    first = scheduler.session
    scheduler.submit(["b"])

    assert scheduler.state is ResumeState.WAITING
    assert scheduler.session is first
    assert registrar.armed == [0]
    assert len(scheduler) == 2

    scheduler.close()


@pytest.mark.asyncio
async def test_nothing_runs_until_prompt_is_idle(scheduler, host) -> None:
    host.idle.clear()
    scheduler.submit(["a"])

    await asyncio.sleep(0.03)
    assert host.ran == []
    assert scheduler.state is ResumeState.WAITING

    host.idle.set()
    await settle(scheduler)
    assert host.ran == [("a",)]


@pytest.mark.asyncio
async def test_delay_blocks_following_tasks(scheduler, host) -> None:
    loop = asyncio.get_running_loop()
    start = loop.time()

    scheduler.submit(["-t", "0.1", "A"])
    scheduler.submit(["B"])
    await settle(scheduler)

    assert host.ran == [("A",), ("B",)]
    assert host.times["A"] - start >= 0.09
    assert host.times["B"] >= host.times["A"]


@pytest.mark.asyncio
async def test_delay_counts_from_reaching_the_head(scheduler, host) -> None:
    loop = asyncio.get_running_loop()
    start = loop.time()

    scheduler.submit(["sleep", "0.1"])
    scheduler.submit(["-t", "0.1", "late"])
    await settle(scheduler)

    # 0.1s of the first task plus 0.1s of delay once "late" became the head
    assert host.times["late"] - start >= 0.19


@pytest.mark.asyncio
async def test_delayed_head_is_rewritten_in_place(scheduler, host, registrar) -> None:
    task = scheduler.submit(["-t", "0.5", "A"])
    scheduler.submit(["B"])

    await asyncio.sleep(0.03)

    assert host.ran == []
    assert scheduler.state is ResumeState.WAITING
    assert scheduler.pending[0] is task
    assert task.delay_ticks == 0
    assert registrar.armed == [0, 50]

    scheduler.close()


@pytest.mark.asyncio
async def test_pending_input_pauses_draining(scheduler, host) -> None:
    host.keys = True
    scheduler.submit(["A"])

    await asyncio.sleep(0.03)
    assert host.ran == []
    assert scheduler.state is ResumeState.WAITING

    host.keys = False
    host.pending = True
    await asyncio.sleep(0.03)
    assert host.ran == []

    host.pending = False
    await settle(scheduler)
    assert host.ran == [("A",)]


@pytest.mark.asyncio
async def test_input_arriving_mid_burst_stops_the_next_task(scheduler, host) -> None:
    scheduler.submit(["type"])
    scheduler.submit(["B"])

    await asyncio.sleep(0.03)
    assert host.ran == [("type",)]
    assert len(scheduler) == 1

    host.keys = False
    await settle(scheduler)
    assert host.ran == [("type",), ("B",)]


@pytest.mark.asyncio
async def test_failing_task_restores_streams_and_queue_continues(scheduler, host) -> None:
    stdout, stderr = sys.stdout, sys.stderr

    scheduler.submit(["fail"])
    scheduler.submit(["after"])
    await settle(scheduler)

    assert host.ran == [("fail",), ("after",)]
    assert sys.stdout is stdout
    assert sys.stderr is stderr
    assert scheduler.state is ResumeState.IDLE
    assert scheduler.session is None


@pytest.mark.asyncio
async def test_task_submitted_by_a_task_runs_after_it(scheduler, host, registrar) -> None:
    scheduler.submit(["submit", "inner"])
    scheduler.submit(["outer"])
    await settle(scheduler)

    assert host.ran == [("submit", "inner"), ("outer",), ("inner",)]
    assert registrar.armed == [0]


@pytest.mark.asyncio
async def test_resubmit_after_drain_arms_again(scheduler, host, registrar) -> None:
    scheduler.submit(["A"])
    await settle(scheduler)

    scheduler.submit(["B"])
    await settle(scheduler)

    assert host.ran == [("A",), ("B",)]
    assert registrar.armed == [0, 0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "args, message",
    [
        (["-c", "echo hi", "extra"], "unexpected positional argument"),
        (["-t", "abc", "cmd"], "invalid -t argument"),
    ],
)
async def test_rejected_submission_leaves_queue_alone(
    scheduler, registrar, args: list[str], message: str
) -> None:
    with pytest.raises(DeferUsageError, match=message):
        scheduler.submit(args)

    assert len(scheduler) == 0
    assert scheduler.state is ResumeState.IDLE
    assert scheduler.session is None
    assert registrar.armed == []


@pytest.mark.asyncio
async def test_help_queues_nothing(scheduler) -> None:
    assert scheduler.submit(["-h"]) is None
    assert len(scheduler) == 0
    assert scheduler.session is None


@pytest.mark.asyncio
async def test_refresh_prompt_defines_missing_rprompt(scheduler, host) -> None:
    scheduler.submit(["+p", "a"])
    assert host.rprompt is None

    scheduler.submit(["b"])
    assert host.rprompt == ""

    host.rprompt = "loading"
    scheduler.submit(["c"])
    assert host.rprompt == "loading"

    await settle(scheduler)


@pytest.mark.asyncio
async def test_close_drops_queue_and_releases_wait(scheduler, host) -> None:
    scheduler.submit(["-t", "10", "A"])
    scheduler.submit(["B"])
    await asyncio.sleep(0.01)

    handle = scheduler.session
    scheduler.close()

    assert handle is not None and handle.released
    assert len(scheduler) == 0
    assert scheduler.session is None
    assert scheduler.state is ResumeState.IDLE

    await asyncio.sleep(0.01)
    assert host.ran == []


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["1e400", "1e1000000"])
async def test_oversized_delay_is_rejected_and_engine_keeps_working(
    scheduler, host, value: str
) -> None:
    with pytest.raises(DeferUsageError, match="invalid -t argument"):
        scheduler.submit(["-t", value, "A"])

    assert len(scheduler) == 0
    assert scheduler.state is ResumeState.IDLE

    scheduler.submit(["B"])
    await settle(scheduler)

    assert host.ran == [("B",)]


@pytest.mark.asyncio
async def test_close_while_a_task_runs_cancels_the_drain(scheduler, host) -> None:
    scheduler.submit(["sleep", "0.2"])
    scheduler.submit(["after"])
    await asyncio.sleep(0.05)

    drainer = scheduler.drainer
    assert drainer is not None and not drainer.done()

    scheduler.close()
    await asyncio.wait([drainer])

    assert drainer.cancelled()
    assert len(scheduler) == 0
    assert scheduler.completed == 0
    assert host.ran == [("sleep", "0.2")]
    assert not host.cmdlock.locked()
