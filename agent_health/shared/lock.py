"""Directory-based mutual exclusion for report writers.

``mkdir`` is atomic on every POSIX filesystem, so whichever process creates
the lock directory owns it. The owner's pid is written inside so a lock
orphaned by a crashed process can be broken, along with a per-acquisition
token so an owner never removes a lock it no longer holds.

Breaking a stale lock happens under an ``flock`` on a sidecar file, so two
waiters can never both decide the same dead owner's lock is theirs to
remove. The kernel drops an ``flock`` when its holder dies, so the sidecar
cannot itself go stale.

A ``DirectoryLock`` instance belongs to one thread at a time.
"""

import fcntl
import os
import shutil
import time
import uuid
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

import psutil

from agent_health.shared.logger import get_agent_logger

PID_FILE = "pid"
OWNER_FILE = "owner"


class LockOutcome(Enum):
    ACQUIRED = "acquired"
    TIMED_OUT = "timed_out"


class DirectoryLock:
    """Bounded-wait lock backed by a directory."""

    def __init__(self, lock_dir: str, timeout: float = 10, poll_interval: float = 1.0):
        self._dir = Path(lock_dir)
        self._breaker = self._dir.with_name(f"{self._dir.name}.break")
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._held = False
        self._token = ""
        self.logger = get_agent_logger("lock")

    @property
    def path(self) -> Path:
        return self._dir

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> LockOutcome:
        """Try to take the lock, waiting at most ``timeout`` seconds."""
        deadline = time.monotonic() + self._timeout
        while True:
            try:
                self._dir.mkdir(parents=False)
            except FileExistsError:
                if self._break_if_orphaned():
                    continue
            else:
                self._token = uuid.uuid4().hex
                (self._dir / OWNER_FILE).write_text(f"{self._token}\n")
                (self._dir / PID_FILE).write_text(f"{psutil.Process().pid}\n")
                self._held = True
                return LockOutcome.ACQUIRED

            if time.monotonic() >= deadline:
                return LockOutcome.TIMED_OUT
            time.sleep(self._poll_interval)

    def release(self):
        """Remove the lock directory if it is still the one this lock created."""
        if not self._held:
            return
        self._held = False
        if _read(self._dir / OWNER_FILE) != self._token:
            self.logger.warning(
                "Lock was taken over before release; leaving it in place",
                extra={"agent_data": {"lock_dir": str(self._dir)}},
            )
            return
        self._discard(f"released.{self._token}")

    @contextmanager
    def hold(self):
        """Yield the acquisition outcome; release afterwards if acquired."""
        outcome = self.acquire()
        try:
            yield outcome
        finally:
            if outcome is LockOutcome.ACQUIRED:
                self.release()

    def _break_if_orphaned(self) -> bool:
        """Remove the lock if the pid recorded inside is no longer running.

        Returns True when the caller should retry ``mkdir`` straight away.
        """
        with open(self._breaker, "a") as sidecar:
            try:
                fcntl.flock(sidecar, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                # Another waiter is already deciding.
                return False
            try:
                if not self._dir.exists():
                    return True
                try:
                    pid = int(_read(self._dir / PID_FILE))
                except ValueError:
                    # Owner is between mkdir and writing its pid.
                    return False
                if psutil.pid_exists(pid):
                    return False
                self.logger.warning(
                    f"Breaking stale lock held by dead pid {pid}",
                    extra={"agent_data": {"lock_dir": str(self._dir), "pid": pid}},
                )
                self._discard(f"stale.{os.getpid()}.{uuid.uuid4().hex}")
                return True
            finally:
                fcntl.flock(sidecar, fcntl.LOCK_UN)

    def _discard(self, tag: str):
        """Move the lock directory aside in one step, then delete it."""
        tombstone = self._dir.with_name(f"{self._dir.name}.{tag}")
        try:
            os.rename(self._dir, tombstone)
        except FileNotFoundError:
            return
        shutil.rmtree(tombstone, ignore_errors=True)


def _read(path: Path) -> str:
    try:
        return path.read_text().strip()
    except FileNotFoundError:
        return ""
