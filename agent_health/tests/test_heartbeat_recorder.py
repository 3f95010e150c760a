"""Tests for the heartbeat recorder."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from agent_health.heartbeat.recorder import HeartbeatRecorder, uptime_key
from agent_health.report.store import ReportStore
from agent_health.shared.errors import InvalidAgentNameError
from agent_health.shared.lock import DirectoryLock
from agent_health.shared.state import MemoryStateStore

EST = timezone(timedelta(hours=-5), "EST")
T0 = datetime(2026, 2, 13, 9, 0, tzinfo=EST)


@pytest.fixture
def store(tmp_path):
    lock = DirectoryLock(str(tmp_path / "report.lock"), timeout=0.2, poll_interval=0.05)
    return ReportStore(str(tmp_path / "agent-health.md"), lock)


@pytest.fixture
def uptime():
    return MemoryStateStore()


@pytest.fixture
def recorder(store, uptime):
    return HeartbeatRecorder(store, uptime, clock=lambda: T0, known_agents=["Duncan", "Leto", "Stilgar"])


def test_first_heartbeat_creates_section(recorder, store):
    assert recorder.record("Stilgar", "Bear", model="claude-opus", channel="telegram")
    section = store.load().get("Stilgar")
    assert section.label == "Bear"
    assert section.last_ping == "2026-02-13T09:00:00 EST"
    assert section.model == "claude-opus"
    assert section.channel == "telegram"
    assert section.status == "⚪ Unknown"


def test_first_heartbeat_sets_uptime_anchor(recorder, uptime):
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    assert uptime.get(uptime_key("Stilgar")) == str(int(T0.timestamp()))


def test_uptime_anchor_not_overwritten(recorder, uptime, store):
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    later = T0 + timedelta(hours=2, minutes=5)
    recorder.record("Stilgar", "Bear", model="m", channel="c", now=later)
    assert uptime.get(uptime_key("Stilgar")) == str(int(T0.timestamp()))
    assert store.read_field("Stilgar", "Uptime") == "2h 5m (since 2026-02-13T09:00:00 EST)"


def test_deleting_anchor_resets_uptime(recorder, uptime, store):
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    uptime.delete(uptime_key("Stilgar"))
    later = T0 + timedelta(hours=1)
    recorder.record("Stilgar", "Bear", model="m", channel="c", now=later)
    assert uptime.get(uptime_key("Stilgar")) == str(int(later.timestamp()))
    assert store.read_field("Stilgar", "Uptime").startswith("0m")


def test_repeated_heartbeat_single_section_latest_ping(recorder, store):
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    recorder.record("Stilgar", "Bear", model="m", channel="c", now=T0 + timedelta(minutes=5))
    text = store.read_text()
    assert text.count("## Stilgar (") == 1
    assert store.read_field("Stilgar", "Last Ping") == "2026-02-13T09:05:00 EST"


def test_heartbeat_keeps_monitor_status(recorder, store):
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    store.set_status_line("Stilgar", "🟡", "Warning")
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    assert store.read_field("Stilgar", "Status") == "🟡 Warning"


def test_heartbeat_updates_last_updated(recorder, store):
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    assert store.load().last_updated == "2026-02-13T09:00:00 EST"


def test_multiple_agents(recorder, store):
    recorder.record("Stilgar", "Bear", model="m", channel="c")
    recorder.record("Duncan", "Hawk", model="m", channel="c")
    assert [s.name for s in store.load().sections()] == ["Stilgar", "Duncan"]


def test_unknown_agent_accepted(recorder, store):
    assert recorder.record("TestAgent", "TestCreature", model="test-model-v1", channel="test-channel")
    assert "TestCreature" in store.read_text()


def test_invalid_name_raises(recorder):
    with pytest.raises(InvalidAgentNameError):
        recorder.record("../etc", "x", model="m", channel="c")


def test_lock_timeout_returns_false_and_leaves_no_anchor(recorder, store, uptime, tmp_path):
    other = DirectoryLock(str(tmp_path / "report.lock"), timeout=0.2, poll_interval=0.05)
    other.acquire()
    try:
        assert recorder.record("Stilgar", "Bear", model="m", channel="c") is False
    finally:
        other.release()
    assert not store.exists()
    assert uptime.get(uptime_key("Stilgar")) is None


def test_concurrent_heartbeats_keep_one_section_per_agent(tmp_path):
    report_path = str(tmp_path / "agent-health.md")
    lock_dir = str(tmp_path / "report.lock")
    agents = {"Duncan": "Hawk", "Leto": "Worm", "Stilgar": "Bear"}
    errors = []

    def beat(agent: str, label: str):
        # Each writer owns its own lock handle, the way separate processes would.
        store = ReportStore(report_path, DirectoryLock(lock_dir, timeout=30, poll_interval=0.005))
        recorder = HeartbeatRecorder(store, MemoryStateStore(), clock=lambda: T0)
        try:
            for _ in range(5):
                assert recorder.record(agent, label, model="m", channel="c")
        except BaseException as e:
            errors.append(e)

    def set_status():
        store = ReportStore(report_path, DirectoryLock(lock_dir, timeout=30, poll_interval=0.005))
        for _ in range(10):
            store.set_status_lines({name: ("🟡", "Warning") for name in agents})

    threads = [threading.Thread(target=beat, args=item) for item in agents.items() for _ in range(3)]
    threads.append(threading.Thread(target=set_status))
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    text = (tmp_path / "agent-health.md").read_text(encoding="utf-8")
    for name, label in agents.items():
        assert text.count(f"## {name} (") == 1
        assert f"## {name} ({label})" in text
    leftovers = [p.name for p in tmp_path.iterdir() if p.suffix == ".tmp" or p.is_dir()]
    assert leftovers == []
