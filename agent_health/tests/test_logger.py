"""Tests for the structured JSON logger."""

import json
import logging
import uuid

import pytest

from agent_health.shared.logger import get_agent_logger


def _unique_name(base: str) -> str:
    """Return a unique logger name to avoid cross-test pollution."""
    return f"{base}_{uuid.uuid4().hex[:8]}"


def test_logger_returns_named_logger():
    name = _unique_name("monitor")
    logger = get_agent_logger(name)
    assert logger.name == f"agent_health.{name}"


def test_logger_formats_json(tmp_path):
    log_file = tmp_path / "test.log"
    name = _unique_name("heartbeat")
    logger = get_agent_logger(name, log_file=str(log_file))
    logger.info("Heartbeat recorded for Stilgar 🟢", extra={"agent_data": {"agent": "Stilgar"}})

    content = log_file.read_text(encoding="utf-8")
    record = json.loads(content.strip().split("\n")[-1])
    assert record["component"] == name
    assert record["message"] == "Heartbeat recorded for Stilgar 🟢"
    assert record["data"]["agent"] == "Stilgar"


def test_logger_includes_exception(tmp_path):
    log_file = tmp_path / "test.log"
    logger = get_agent_logger(_unique_name("monitor"), log_file=str(log_file))
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("cycle failed")
    record = json.loads(log_file.read_text(encoding="utf-8").strip().split("\n")[-1])
    assert "RuntimeError: boom" in record["exception"]


def test_logger_default_level():
    logger = get_agent_logger(_unique_name("lock"))
    assert logger.level == logging.INFO
