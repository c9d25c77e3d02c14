"""Tests for the foreground runner's signal setup."""

import asyncio
import signal

import pytest

from uzi_pool import daemon
from uzi_pool.config.models import Config, NodeConfig
from uzi_pool.daemon import PoolRunner


@pytest.fixture
def runner():
    return PoolRunner(Config(node=NodeConfig(address="127.0.0.1:8765")))


async def test_windows_watcher_task_is_kept_and_stops_on_signal(runner, monkeypatch):
    handlers = {}
    monkeypatch.setattr(daemon.sys, "platform", "win32")
    monkeypatch.setattr(daemon.signal, "signal", lambda sig, handler: handlers.setdefault(sig, handler))

    runner._stop_event = asyncio.Event()
    runner._setup_signals()

    watcher = runner._signal_watcher
    assert isinstance(watcher, asyncio.Task)
    assert not watcher.done()

    handlers[signal.SIGINT](signal.SIGINT, None)
    await asyncio.wait_for(watcher, timeout=1.0)

    assert runner._stop_event.is_set()


async def test_unix_signals_need_no_watcher(runner, monkeypatch):
    installed = []
    loop = asyncio.get_running_loop()
    monkeypatch.setattr(daemon.sys, "platform", "linux")
    monkeypatch.setattr(loop, "add_signal_handler", lambda sig, cb: installed.append(sig))

    runner._stop_event = asyncio.Event()
    runner._setup_signals()

    assert runner._signal_watcher is None
    assert set(installed) == {signal.SIGTERM, signal.SIGINT}
