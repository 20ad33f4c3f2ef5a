# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from idefer.cli import IDeferCmdlineApp
from idefer.scheduler import DeferScheduler

from .fakes import CountingRegistrar, FakeHost


@pytest.fixture()
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture()
def registrar(host: FakeHost) -> CountingRegistrar:
    return CountingRegistrar(host)


@pytest.fixture()
def scheduler(host: FakeHost, registrar: CountingRegistrar):
    sched = DeferScheduler(host, registrar=registrar)
    host.scheduler = sched
    return sched


@pytest.fixture()
def app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Real shell state with no prompt session attached.

    The working directory is moved to tmp_path so `cd` in tests can't leak.
    """
    monkeypatch.chdir(tmp_path)
    return IDeferCmdlineApp(rcFile=None, logdir=str(tmp_path / "logs"))
