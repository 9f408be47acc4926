from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from zoh.errors import StorageIOFailure

log = logging.getLogger(__name__)


def ensure_private_dir(path: Path) -> None:
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise StorageIOFailure(f"Failed to create directory {path}: {e}") from e


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so readers see either the old or the new content.

    The bytes go to a temporary file in the same directory which then replaces
    the target. The result is only readable by the owner.
    """
    ensure_private_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            log.debug("Failed to remove temporary file %s", tmp_name, exc_info=True)
        raise StorageIOFailure(f"Failed to write {path}: {e}") from e


def remove_if_exists(path: Path) -> bool:
    """Delete ``path``. Returns False if it was already absent."""
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageIOFailure(f"Failed to delete {path}: {e}") from e
