"""Shared utilities for the agent health tools."""

from agent_health.shared.config import load_agent_config, load_health_config
from agent_health.shared.logger import get_agent_logger
from agent_health.shared.lock import DirectoryLock, LockOutcome
from agent_health.shared.state import FileStateStore, MemoryStateStore, RedisStateStore

__all__ = [
    "load_agent_config",
    "load_health_config",
    "get_agent_logger",
    "DirectoryLock",
    "LockOutcome",
    "FileStateStore",
    "MemoryStateStore",
    "RedisStateStore",
]
