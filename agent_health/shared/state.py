"""Key-value stores for the small markers kept between runs.

Prior classifications, uptime anchors and the last-alert marker are each a
single short string. Production binds them to flat files (or Redis); tests
use the in-memory store.
"""

import os
import tempfile
from pathlib import Path
from typing import Protocol

import redis


class StateStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class FileStateStore:
    """One text file per key inside ``directory``."""

    def __init__(self, directory: str):
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        return self._dir / key

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text().strip()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str):
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(f"{value}\n")
            os.replace(tmp, self._path(key))
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def delete(self, key: str):
        path = self._path(key)
        if path.exists():
            path.unlink()


class MemoryStateStore:
    """Dict-backed store for tests and dry experiments."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str):
        self.values[key] = value

    def delete(self, key: str):
        self.values.pop(key, None)


class RedisStateStore:
    """Store markers as plain Redis string keys under a common prefix."""

    def __init__(self, redis_url: str = "redis://localhost:6379", prefix: str = "agent-health:"):
        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._prefix = prefix

    def get(self, key: str) -> str | None:
        return self._client.get(self._prefix + key)

    def set(self, key: str, value: str):
        self._client.set(self._prefix + key, value)

    def delete(self, key: str):
        self._client.delete(self._prefix + key)


def build_state_store(config: dict, directory_key: str, prefix: str = "") -> StateStore:
    """Create the store named by ``state_backend`` for one marker family.

    ``directory_key`` picks the config entry holding the file directory
    (``state_dir``, ``uptime_dir`` or ``alert_marker_dir``).
    """
    backend = config.get("state_backend", "file")
    if backend == "redis":
        return RedisStateStore(
            config.get("redis_url", "redis://localhost:6379"),
            prefix=f"agent-health:{prefix}",
        )
    if backend != "file":
        raise ValueError(f"Unknown state backend: {backend}")
    return FileStateStore(config[directory_key])
