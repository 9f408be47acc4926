"""Cross-process locking with a bounded wait."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout

from zoh.errors import LockTimeout, StorageIOFailure

log = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL = 0.1


@contextmanager
def locked(
    path: Path,
    *,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Iterator[None]:
    """Hold an exclusive OS-level lock on ``path`` for the duration of the block.

    Raises LockTimeout if the lock cannot be acquired within ``timeout`` seconds.
    The lock is released on every exit path.
    """
    lock = FileLock(str(path))
    try:
        lock.acquire(timeout=timeout, poll_interval=poll_interval)
    except Timeout:
        raise LockTimeout(f"Failed to acquire lock {path} within {timeout:g}s") from None
    except OSError as e:
        raise StorageIOFailure(f"Failed to open lock file {path}: {e}") from e
    log.debug("Acquired lock %s", path)
    try:
        yield
    finally:
        lock.release()
        log.debug("Released lock %s", path)
