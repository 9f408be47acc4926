from __future__ import annotations

import logging
import os
from pathlib import Path

from zoh import DEFAULT_DATA_DIR

log = logging.getLogger("zoh")

DEFAULT_MARKER_PATH = DEFAULT_DATA_DIR / ".file-store-warning-shown"

QUIET_ENV_VAR = "ZOH_QUIET"


def quiet_from_env() -> bool:
    return os.environ.get(QUIET_ENV_VAR, "").lower() in ("1", "true")


class OneTimeNotice:
    """Warnings that are shown on the first run only.

    Whether they were shown is remembered in a marker file, so later CLI
    invocations stay silent. The marker is only written once a warning was
    actually logged. ``quiet`` suppresses them entirely.
    """

    def __init__(self, marker_path: Path = DEFAULT_MARKER_PATH, *, quiet: bool = False) -> None:
        self.marker_path = Path(marker_path)
        self.quiet = quiet
        self._emitted = False

    @classmethod
    def from_env(cls) -> "OneTimeNotice":
        return cls(DEFAULT_MARKER_PATH, quiet=quiet_from_env())

    @property
    def shown(self) -> bool:
        return self.marker_path.exists()

    def warn(self, message: str) -> None:
        if self.quiet or self.shown:
            log.debug("Suppressed notice: %s", message)
            return
        log.warning(message)
        self._emitted = True

    def mark_shown(self) -> None:
        """Write the marker if a warning was emitted by this notice."""
        if not self._emitted or self.shown:
            return
        try:
            self.marker_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self.marker_path.write_text("1")
            self.marker_path.chmod(0o600)
        except OSError:
            log.warning("Failed to write notice marker %s", self.marker_path, exc_info=True)
