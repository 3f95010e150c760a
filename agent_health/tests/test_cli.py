"""Tests for the heartbeat and monitor commands."""

import json

import pytest
from unittest.mock import AsyncMock, patch

from agent_health.heartbeat.__main__ import main as heartbeat_main, resolve_model
from agent_health.monitor.__main__ import main as monitor_main
from agent_health.report.document import parse_report


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("AGENT_HEALTH_CONFIG", raising=False)
    monkeypatch.delenv("AGENT_HEALTH_REPORT", raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "report_path": str(tmp_path / "agent-health.md"),
        "incident_log_path": str(tmp_path / "agent-health-incidents.md"),
        "lock_dir": str(tmp_path / "report.lock"),
        "lock_timeout_seconds": 1,
        "state_dir": str(tmp_path / "state"),
        "uptime_dir": str(tmp_path / "uptime"),
        "alert_marker_dir": str(tmp_path / "alerts"),
        "known_agents": ["TestAgent"],
    }))
    return path


def test_heartbeat_requires_arguments(capsys):
    with pytest.raises(SystemExit) as exc:
        heartbeat_main([])
    assert exc.value.code == 2
    assert "usage" in capsys.readouterr().err.lower()


def test_heartbeat_writes_report(config_file, tmp_path, monkeypatch):
    monkeypatch.setenv("MODEL", "test-model-v1")
    monkeypatch.setenv("CHANNEL", "test-channel")

    assert heartbeat_main(["TestAgent", "TestCreature", "--config", str(config_file)]) == 0

    doc = parse_report((tmp_path / "agent-health.md").read_text(encoding="utf-8"))
    section = doc.get("TestAgent")
    assert section.label == "TestCreature"
    assert section.model == "test-model-v1"
    assert section.channel == "test-channel"
    assert doc.last_updated
    assert (tmp_path / "uptime" / "TestAgent-uptime-start").exists()


def test_heartbeat_repeated_and_second_agent(config_file, tmp_path, monkeypatch):
    monkeypatch.setenv("MODEL", "m")
    monkeypatch.delenv("CHANNEL", raising=False)
    heartbeat_main(["TestAgent", "TestCreature", "--config", str(config_file)])
    heartbeat_main(["TestAgent", "TestCreature", "--config", str(config_file)])
    heartbeat_main(["SecondAgent", "SecondCreature", "--config", str(config_file)])

    text = (tmp_path / "agent-health.md").read_text(encoding="utf-8")
    assert text.count("## TestAgent (") == 1
    assert "## SecondAgent (SecondCreature)" in text
    assert parse_report(text).get("TestAgent").channel == "telegram"


def test_heartbeat_rejects_bad_name(config_file, monkeypatch):
    monkeypatch.setenv("MODEL", "m")
    assert heartbeat_main(["bad name", "x", "--config", str(config_file)]) == 2


@pytest.mark.asyncio
async def test_resolve_model_prefers_env(monkeypatch):
    monkeypatch.setenv("MODEL", "from-env")
    assert await resolve_model() == "from-env"


@pytest.mark.asyncio
async def test_resolve_model_queries_openclaw(monkeypatch):
    monkeypatch.delenv("MODEL", raising=False)
    cli = AsyncMock()
    cli.current_model = AsyncMock(return_value="claude-opus")
    assert await resolve_model(cli) == "claude-opus"


def test_monitor_missing_report_exits_nonzero(config_file):
    assert monitor_main(["--config", str(config_file)]) == 1


def test_monitor_dry_run(config_file, tmp_path, monkeypatch):
    monkeypatch.setenv("MODEL", "m")
    heartbeat_main(["TestAgent", "TestCreature", "--config", str(config_file)])

    with patch("agent_health.monitor.agent.build_alert_sender") as mock_build:
        mock_build.return_value.send = AsyncMock(return_value=True)
        assert monitor_main(["--dry-run", "--config", str(config_file)]) == 0
        mock_build.return_value.send.assert_not_called()

    doc = parse_report((tmp_path / "agent-health.md").read_text(encoding="utf-8"))
    assert doc.get("TestAgent").status == "🟢 Healthy"
    assert not (tmp_path / "state").exists()
