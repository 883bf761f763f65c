from __future__ import annotations

import asyncio
import threading
from datetime import timedelta
from pathlib import Path

import pytest

from intention_sync.mirror import FileMirrorMedium, WidgetMirror
from intention_sync.network import SyncStatusCoordinator
from intention_sync.reconcile import ReconciliationDriver
from intention_sync.storage import IntentionStore
from intention_sync.tools import register_tools
from intention_sync.weeks import current_week_start

from stubs import FakeScheduler, RecordingSignal, StubClient


class StubTool:
    def __init__(self, fn, name):
        self.fn = fn
        self.name = name


class StubServer:
    def __init__(self) -> None:
        self._tools: dict[str, StubTool] = {}

    def tool(self, *args, **kwargs):
        provided_name = kwargs.get("name")

        def decorator(fn):
            tool_name = provided_name or fn.__name__
            tool = StubTool(fn, tool_name)
            self._tools[tool_name] = tool
            return tool

        return decorator


class StubContextLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, message, extra=None):
        self.messages.append(("info", message))

    def debug(self, message, extra=None):
        self.messages.append(("debug", message))


class StubContext:
    def __init__(self) -> None:
        self.logger = StubContextLogger()


@pytest.fixture
def env(tmp_path: Path):
    client = StubClient()
    store = IntentionStore(tmp_path / "chroma", client_factory=lambda: client)
    signal = RecordingSignal()
    mirror = WidgetMirror(FileMirrorMedium(tmp_path / "shared"), signal=signal)
    driver = ReconciliationDriver(store, mirror)
    store.add_save_listener(driver.handle_save)
    coordinator = SyncStatusCoordinator(FakeScheduler())
    server = StubServer()
    handles = register_tools(
        server, store=store, mirror=mirror, driver=driver, coordinator=coordinator
    )
    return server, handles, store, mirror, signal, coordinator


def test_registers_all_tools(env) -> None:
    server, handles, *_ = env

    assert set(server._tools) == {
        "save_intention",
        "get_intention",
        "recall_intentions",
        "app_foreground",
    }
    assert handles.save_intention.name == "save_intention"


def test_save_current_week_reaches_widget(env) -> None:
    server, _, store, mirror, signal, _ = env
    context = StubContext()

    result = asyncio.run(server._tools["save_intention"].fn("  Calm focus  ", context=context))

    week = current_week_start()
    assert result["week_start"] == week.isoformat()
    assert result["text"] == "Calm focus"
    assert result["cleared"] is False
    assert store.find(week) == "Calm focus"
    assert mirror.read().text == "Calm focus"
    assert signal.emitted == ["WeeklyIntentionWidget"]
    assert context.logger.messages == [("info", "Saved intention")]


def test_save_other_week_skips_widget(env) -> None:
    server, _, store, mirror, signal, _ = env
    past = current_week_start() - timedelta(days=7)

    result = asyncio.run(server._tools["save_intention"].fn("rest", week_start=(past + timedelta(days=3)).isoformat()))

    assert result["week_start"] == past.isoformat()
    assert store.find(past) == "rest"
    assert signal.emitted == []
    assert mirror.read().text == ""


def test_blank_save_clears(env) -> None:
    server, *_ = env
    save = server._tools["save_intention"].fn

    asyncio.run(save("focus"))
    result = asyncio.run(save("   "))

    assert result["cleared"] is True
    assert result["record_id"] is None
    assert server._tools["get_intention"].fn()["text"] == ""


def test_invalid_week_is_rejected(env) -> None:
    server, *_ = env

    with pytest.raises(ValueError):
        asyncio.run(server._tools["save_intention"].fn("focus", week_start="someday"))


def test_get_intention_reports_current_week(env) -> None:
    server, *_ = env
    asyncio.run(server._tools["save_intention"].fn("focus"))

    result = server._tools["get_intention"].fn()

    assert result["text"] == "focus"
    assert result["is_current_week"] is True


def test_recall_filters_and_limits(env) -> None:
    server, _, store, *_ = env
    week = current_week_start()
    for offset, text in enumerate(["Calm focus", "Rest", "Focus on health"]):
        store.upsert(week - timedelta(weeks=offset + 1), text)

    result = server._tools["recall_intentions"].fn(query="focus", limit=1)

    assert result["count"] == 2
    assert [match["text"] for match in result["matches"]] == ["Calm focus"]

    with pytest.raises(ValueError):
        server._tools["recall_intentions"].fn(limit=0)


def test_app_foreground_writes_only_on_mismatch(env) -> None:
    server, _, store, mirror, signal, coordinator = env
    store.upsert(current_week_start() - timedelta(weeks=1), "old")
    signal.emitted.clear()

    first = asyncio.run(server._tools["app_foreground"].fn())
    assert first["mirror_written"] is False
    assert first["snapshot"]["text"] == ""

    mirror.write(current_week_start(), "stale")
    second = asyncio.run(server._tools["app_foreground"].fn())

    assert second["mirror_written"] is True
    assert second["snapshot"]["text"] == ""
    assert second["sync_status"] == coordinator.label


def test_save_runs_store_and_mirror_off_the_loop(env, monkeypatch) -> None:
    server, _, store, mirror, *_ = env
    loop_thread = threading.get_ident()
    writer_threads: list[int] = []
    real_write = mirror.write

    def recording_write(*args, **kwargs):
        writer_threads.append(threading.get_ident())
        return real_write(*args, **kwargs)

    monkeypatch.setattr(mirror, "write", recording_write)

    asyncio.run(server._tools["save_intention"].fn("focus"))
    mirror.write(current_week_start(), "stale")
    asyncio.run(server._tools["app_foreground"].fn())

    assert len(writer_threads) == 3
    assert writer_threads[0] != loop_thread
    assert writer_threads[2] != loop_thread
    assert store.find(current_week_start()) == "focus"
