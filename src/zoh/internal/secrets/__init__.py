"""Secret stores for long-lived credentials.

All keyring imports are lazy so the package works when keyring is not installed.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from zoh.errors import KeyringUnavailable
from zoh.internal.secrets import _detect
from zoh.internal.secrets._base import SERVICE_NAME, Store, refresh_token_key
from zoh.internal.secrets._file import DEFAULT_STORE_PATH, FileStore
from zoh.internal.secrets._keyring import KeyringStore
from zoh.internal.secrets._notice import OneTimeNotice

log = logging.getLogger(__name__)

BACKEND_ENV_VAR = "ZOH_SECRET_BACKEND"
PASSWORD_ENV_VAR = "ZOH_STORE_PASSWORD"

MODES = ("auto", "keyring", "file")

MACHINE_KEY_WARNING = (
    "WARNING: Using machine-specific encryption key. "
    f"For better security, set a password via {PASSWORD_ENV_VAR} env var."
)


def _make_file_store(path: Path, password: Optional[str], notice: OneTimeNotice) -> FileStore:
    if not password:
        notice.warn(MACHINE_KEY_WARNING)
    store = FileStore(path, password=password)
    notice.mark_shown()
    return store


def make_store(
    mode: Optional[str] = None,
    *,
    notice: Optional[OneTimeNotice] = None,
    file_path: Path = DEFAULT_STORE_PATH,
    password: Optional[str] = None,
) -> Store:
    """Return the Store for the given mode.

    Modes:
      auto    – keyring unless the environment can't use it, encrypted file otherwise (default)
      keyring – system keyring only
      file    – encrypted file only

    ``mode`` and ``password`` default to ZOH_SECRET_BACKEND and ZOH_STORE_PASSWORD.
    """
    mode = (mode or os.environ.get(BACKEND_ENV_VAR) or "auto").lower()
    if mode not in MODES:
        raise ValueError(f"Unknown secret backend {mode!r}, expected one of {', '.join(MODES)}")
    if notice is None:
        notice = OneTimeNotice.from_env()
    if password is None:
        password = os.environ.get(PASSWORD_ENV_VAR) or None

    if mode == "file":
        return _make_file_store(file_path, password, notice)
    if mode == "keyring":
        return KeyringStore()

    # auto
    if not _detect.keyring_supported():
        notice.warn("Detected WSL/headless environment, using encrypted file storage")
        return _make_file_store(file_path, password, notice)
    try:
        return KeyringStore()
    except KeyringUnavailable as e:
        reason = e.message
    except Exception as e:
        reason = str(e)
    log.debug("Keyring unavailable: %s", reason)
    notice.warn(f"Keyring unavailable ({reason}), falling back to encrypted file")
    return _make_file_store(file_path, password, notice)


__all__ = [
    "SERVICE_NAME",
    "Store",
    "FileStore",
    "KeyringStore",
    "OneTimeNotice",
    "make_store",
    "refresh_token_key",
]
