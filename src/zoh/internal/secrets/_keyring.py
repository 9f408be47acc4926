"""Secret store backed by the system keyring.

The keyring import is lazy so the module works when keyring is not installed.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from zoh import DEFAULT_DATA_DIR
from zoh.errors import KeyringUnavailable, NotFound, SecretStoreError
from zoh.internal._fs import ensure_private_dir
from zoh.internal._locking import DEFAULT_LOCK_TIMEOUT, locked
from zoh.internal.secrets._base import SERVICE_NAME, Store

log = logging.getLogger(__name__)

# Keyrings cannot enumerate their entries, so the key set is kept in this entry.
INDEX_KEY = "__zoh_index__"
DEFAULT_INDEX_LOCK_PATH = DEFAULT_DATA_DIR / "keyring-index.lock"


def open_keyring():
    """Return the keyring module if a usable backend is available.

    Raises KeyringUnavailable otherwise.
    """
    try:
        import keyring
    except ImportError:
        raise KeyringUnavailable("keyring package is not installed") from None

    try:
        backend = keyring.get_keyring()
    except Exception as e:
        raise KeyringUnavailable(f"failed to open keyring: {e}") from e
    backend_name = type(backend).__name__.lower()
    if "fail" in backend_name or "null" in backend_name:
        raise KeyringUnavailable(f"no usable keyring backend ({type(backend).__name__})")
    return keyring


class KeyringStore(Store):
    """Store backed by the OS keyring, namespaced under one service name.

    The key index entry is updated under ``index_lock_path`` so concurrent
    processes do not drop each other's keys.
    """

    name = "keyring"

    def __init__(
        self,
        service: str = SERVICE_NAME,
        keyring_module=None,
        index_lock_path: Path = DEFAULT_INDEX_LOCK_PATH,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> None:
        self.service = service
        self.index_lock_path = Path(index_lock_path)
        self.lock_timeout = lock_timeout
        self._kr = keyring_module if keyring_module is not None else open_keyring()

    def __repr__(self) -> str:
        return f"KeyringStore(service={self.service!r})"

    def _read_index(self) -> set[str]:
        try:
            raw = self._kr.get_password(self.service, INDEX_KEY)
        except Exception as e:
            raise SecretStoreError(f"keyring list failed: {e}") from e
        if not raw:
            return set()
        try:
            keys = json.loads(raw)
        except ValueError:
            keys = None
        if not isinstance(keys, list):
            log.warning("Keyring key index is corrupt, starting a new one")
            return set()
        return {k for k in keys if isinstance(k, str)}

    def _write_index(self, keys: set[str]) -> None:
        self._kr.set_password(self.service, INDEX_KEY, json.dumps(sorted(keys)))

    @contextmanager
    def _index_locked(self) -> Iterator[None]:
        ensure_private_dir(self.index_lock_path.parent)
        with locked(self.index_lock_path, timeout=self.lock_timeout):
            yield

    def get(self, key: str) -> str:
        try:
            value = self._kr.get_password(self.service, key)
        except Exception as e:
            raise SecretStoreError(f"keyring get failed: {e}") from e
        if value is None:
            raise NotFound(key)
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self._kr.set_password(self.service, key, value)
        except Exception as e:
            raise SecretStoreError(f"keyring set failed: {e}") from e
        with self._index_locked():
            keys = self._read_index()
            if key not in keys:
                keys.add(key)
                try:
                    self._write_index(keys)
                except Exception as e:
                    raise SecretStoreError(f"keyring set failed: {e}") from e
        log.debug("Stored %s in keyring", key)

    def delete(self, key: str) -> None:
        from keyring.errors import PasswordDeleteError

        try:
            self._kr.delete_password(self.service, key)
        except PasswordDeleteError:
            self._forget(key)
            raise NotFound(key) from None
        except Exception as e:
            raise SecretStoreError(f"keyring delete failed: {e}") from e
        self._forget(key)
        log.debug("Deleted %s from keyring", key)

    def _forget(self, key: str) -> None:
        with self._index_locked():
            keys = self._read_index()
            if key not in keys:
                return
            keys.discard(key)
            try:
                self._write_index(keys)
            except Exception:
                log.warning("Failed to update keyring key index after deleting %s", key, exc_info=True)

    def list(self) -> set[str]:
        return self._read_index() - {INDEX_KEY}
