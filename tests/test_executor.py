# tests/test_executor.py

from __future__ import annotations

import sys

import pytest

from idefer.executor import TaskExecutor, current_options
from idefer.host import HookKind
from idefer.options import OptionSet, parse_defer_args
from idefer.scheduler import Task


def make_task(*args: str) -> Task:
    req = parse_defer_args(args)
    return Task(req.delay_ticks, req.options, req.payload)


@pytest.mark.asyncio
async def test_default_options_discard_output(host, capsys) -> None:
    await TaskExecutor(host).apply(make_task("say", "hidden"))
    await TaskExecutor(host).apply(make_task("warn", "hidden"))

    captured = capsys.readouterr()
    assert "hidden" not in captured.out
    assert "hidden" not in captured.err


@pytest.mark.asyncio
async def test_disabled_suppression_keeps_output(host, capsys) -> None:
    await TaskExecutor(host).apply(make_task("+1", "say", "visible"))
    await TaskExecutor(host).apply(make_task("+2", "warn", "visible-err"))

    captured = capsys.readouterr()
    assert "visible" in captured.out
    assert "visible-err" in captured.err


@pytest.mark.asyncio
async def test_streams_restored_after_failure(host) -> None:
    stdout, stderr = sys.stdout, sys.stderr

    await TaskExecutor(host).apply(make_task("fail"))

    assert sys.stdout is stdout
    assert sys.stderr is stderr


@pytest.mark.asyncio
async def test_options_visible_only_while_running(host) -> None:
    await TaskExecutor(host).apply(make_task("+12", "probe"))
    await TaskExecutor(host).apply(make_task("-c", "probe"))

    assert host.seen_options[0].letters() == "dmszpr"
    assert host.seen_options[1].letters() == "12dmszprc"
    assert current_options() is None


@pytest.mark.asyncio
async def test_argv_payload_is_not_resplit(host) -> None:
    await TaskExecutor(host).apply(make_task("echo", "two words", "'quoted'"))

    assert host.ran == [("echo", "two words", "'quoted'")]


@pytest.mark.asyncio
async def test_eval_payload_runs_as_command_line(host) -> None:
    await TaskExecutor(host).apply(make_task("-c", "set a 1; echo 'x y'"))

    assert host.ran == ["set a 1; echo 'x y'"]


@pytest.mark.asyncio
async def test_empty_payload_only_runs_hooks(host) -> None:
    calls: list[str] = []

    async def mark() -> None:
        calls.append("precmd")

    host.hook_registry[HookKind.PRECMD].append("mark")
    host.hook_fns["mark"] = mark

    await TaskExecutor(host).apply(make_task())

    assert host.ran == []
    assert calls == ["precmd"]


@pytest.mark.asyncio
async def test_chpwd_hooks_only_when_directory_changes(host) -> None:
    calls: list[str] = []

    async def chpwd() -> None:
        calls.append(host.dir)

    host.hook_registry[HookKind.CHPWD].append("on-cd")
    host.hook_fns["on-cd"] = chpwd

    executor = TaskExecutor(host)
    await executor.apply(make_task("noop"))
    assert calls == []

    await executor.apply(make_task("cd", "/tmp"))
    assert calls == ["/tmp"]

    await executor.apply(make_task("+d", "cd", "/srv"))
    assert calls == ["/tmp"]


@pytest.mark.asyncio
async def test_hooks_run_even_when_payload_fails(host) -> None:
    calls: list[str] = []

    async def mark() -> None:
        calls.append("precmd")

    host.hook_registry[HookKind.PRECMD].append("mark")
    host.hook_fns["mark"] = mark

    await TaskExecutor(host).apply(make_task("fail"))

    assert calls == ["precmd"]
    assert host.calls == ["suggestions", "highlight", "refresh", "flush"]


@pytest.mark.asyncio
async def test_broken_and_missing_hooks_are_skipped(host) -> None:
    calls: list[str] = []

    async def broken() -> None:
        raise RuntimeError("hook exploded")

    async def good() -> None:
        calls.append("good")

    host.hook_registry[HookKind.PRECMD].extend(["undefined", "broken", "good"])
    host.hook_fns.update(broken=broken, good=good)

    await TaskExecutor(host).apply(make_task("noop"))

    assert calls == ["good"]
    assert host.calls == ["suggestions", "highlight", "refresh", "flush"]


@pytest.mark.asyncio
async def test_precmd_hooks_skipped_without_m(host) -> None:
    calls: list[str] = []

    async def mark() -> None:
        calls.append("precmd")

    host.hook_registry[HookKind.PRECMD].append("mark")
    host.hook_fns["mark"] = mark

    await TaskExecutor(host).apply(make_task("+m", "noop"))

    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "flags, expected",
    [
        ([], ["suggestions", "highlight", "refresh", "flush"]),
        (["+s"], ["highlight", "refresh", "flush"]),
        (["+z"], ["suggestions", "refresh", "flush"]),
        (["+pr"], ["suggestions", "highlight"]),
        (["+a"], []),
    ],
)
async def test_invalidation_follows_options(host, flags: list[str], expected: list[str]) -> None:
    await TaskExecutor(host).apply(make_task(*flags, "noop"))

    assert host.calls == expected


@pytest.mark.asyncio
async def test_absent_caches_are_not_errors(host) -> None:
    host.suggestions = False
    host.highlight_cache = False

    await TaskExecutor(host).apply(make_task("noop"))

    assert host.calls == ["suggestions", "highlight", "refresh", "flush"]
    assert host.ran == [("noop",)]


@pytest.mark.asyncio
async def test_task_option_set_default_excludes_eval() -> None:
    task = make_task("x")

    assert OptionSet.EVAL not in task.options
    assert str(task) == "0s 12dmszpr x"
    assert str(make_task("-t", "1.5", "+a", "-c", "echo hi")) == "1.5s c 'echo hi'"


@pytest.mark.asyncio
async def test_eval_task_with_word_payload_is_logged_not_run(host) -> None:
    await TaskExecutor(host).apply(Task(0, OptionSet.EVAL, ("echo", "hi")))

    assert host.ran == []
    assert not host.cmdlock.locked()
